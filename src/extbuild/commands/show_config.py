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

"""Implementation of `extbuild show-config` command."""

from __future__ import annotations

from pathlib import Path

import typer
import yaml

from extbuild.config import load_config, load_settings
from extbuild.core.context import build_request
from extbuild.core.exceptions import ConfigError


def show_config(
    env_file: Path = typer.Option(None, "--env-file", help="Load deployment variables from this .env file"),
) -> None:
    """Print the resolved build request with secrets redacted."""
    cfg = load_config()
    try:
        request = build_request(cfg, load_settings(env_file=env_file))
    except ConfigError as e:
        typer.echo(f"[config] ERROR: {e}", err=True)
        raise typer.Exit(code=e.exit_code) from e
    typer.echo(yaml.safe_dump(request.to_dict(), sort_keys=False))
