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

"""Environment construction for the external build tool."""

from __future__ import annotations

import os
from collections.abc import Mapping

from extbuild.core.context import BuildRequest

LIB_PATH_VAR = "FOSWIKI_LIBS"
GITHUB_TOKEN_VAR = "GITHUB_AUTH_TOKEN"
REGISTRY_TOKEN_VAR = "NPM_AUTH_TOKEN"

# NODE_ENV=production switches the JS tooling used by extension builds to
# an optimized path that expects prebuilt assets.
STRIPPED_VARS = ("NODE_ENV",)


def get_build_env(request: BuildRequest, base_env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a fresh environment mapping for one builder invocation.

    Starts from a snapshot of ``base_env`` (the process environment by
    default), overlays the library path and auth tokens that are configured,
    and drops variables that change the builder's behaviour. The source
    mapping is never modified.

    Examples:
        >>> env = get_build_env(request, {"NODE_ENV": "production", "PATH": "/bin"})
        >>> "NODE_ENV" in env
        False
    """
    env = dict(os.environ if base_env is None else base_env)

    if request.lib_path:
        env[LIB_PATH_VAR] = request.lib_path
    if request.github_token:
        env[GITHUB_TOKEN_VAR] = request.github_token
    if request.registry_token:
        env[REGISTRY_TOKEN_VAR] = request.registry_token

    for var in STRIPPED_VARS:
        env.pop(var, None)

    return env
