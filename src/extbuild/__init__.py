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

"""Extbuild: fetch, patch, build and deploy a single Foswiki extension."""

__version__ = "0.1.0"
