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

"""CLI application definition for Extbuild."""

from __future__ import annotations

from typer import Typer

from extbuild.commands.build import build
from extbuild.commands.show_config import show_config

app: Typer = Typer(
    name="extbuild",
    help="Build and deploy a Foswiki extension.",
    add_completion=False,
)

app.command(name="build")(build)
app.command(name="show-config")(show_config)
