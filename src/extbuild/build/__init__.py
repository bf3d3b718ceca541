# This file is part of Extbuild, a tool for building and deploying Foswiki extensions.
#
# Copyright 2025 The Extbuild Authors.
#
# SPDX-License-Identifier: GPL-3.0-only
#
# Extbuild is free software: you can redistribute it and/or modify it under
# the terms of the GNU General Public License version 3, as published by the
# Free Software Foundation.
#
# Extbuild is distributed in the hope that it will be useful, but WITHOUT
# ANY WARRANTY; without even the implied warranties of MERCHANTABILITY,
# SATISFACTORY QUALITY, or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with
# Extbuild. If not, see <http://www.gnu.org/licenses/>.

"""Build module for Extbuild.

Provides the builder strategies, environment construction, process
invocation and the end-to-end pipeline.
"""

from extbuild.build.env import get_build_env
from extbuild.build.errors import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    log_phase_event,
    phase_error,
    phase_warning,
)
from extbuild.build.invoker import InvocationResult, invoke
from extbuild.build.pipeline import PipelineResult, run_pipeline
from extbuild.build.strategies import BuilderStrategy, get_strategy

__all__ = [
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "BuilderStrategy",
    "InvocationResult",
    "PipelineResult",
    "get_build_env",
    "get_strategy",
    "invoke",
    "log_phase_event",
    "phase_error",
    "phase_warning",
    "run_pipeline",
]
