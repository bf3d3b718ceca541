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

"""Implementation of `extbuild build` command.

Resolves the build request from the config file, the deployment environment
and CLI options, then runs the fetch/locate/patch/build/deploy pipeline
inside a RunContext.
"""

from __future__ import annotations

import sys
import traceback
from pathlib import Path

import typer

from extbuild.build.errors import EXIT_FAILURE, EXIT_SUCCESS, phase_error
from extbuild.build.pipeline import run_pipeline
from extbuild.config import load_config, load_settings
from extbuild.core.context import build_request
from extbuild.core.exceptions import ConfigError, ExtbuildError
from extbuild.core.run import RunContext, activity


def build(
    name: str = typer.Option(None, "-n", "--name", help="Extension name (default: GITHUB_REPOSITORY)"),
    ref: str = typer.Option(None, "-r", "--ref", help="Source ref to fetch (default: GITHUB_REF)"),
    release: str = typer.Option(None, "--release", help="Release string (default: RELEASE_STRING or derived from ref)"),
    build_path: Path = typer.Option(None, "--build-path", help="Working directory (default: BUILD_PATH)"),
    deploy_path: Path = typer.Option(None, "--deploy-path", help="Deployment directory (default: DEPLOY_PATH)"),
    builder: str = typer.Option(None, "-x", "--builder", help="Builder convention: legacy or modern"),
    flat: bool = typer.Option(None, "--flat/--nested", help="Treat the source tree itself as the build root"),
    local: bool = typer.Option(None, "--local/--remote", help="Copy a local source tree instead of downloading"),
    local_path: Path = typer.Option(None, "--local-path", help="Local source directory (default: LOCAL_SOURCE_PATH)"),
    flags: list[str] = typer.Option(None, "--flag", help="Extra legacy builder flag (repeatable)"),
    copy_policy: str = typer.Option(None, "--copy-policy", help="Artifact copy failures: abort or collect"),
    build_timeout: float = typer.Option(None, "--build-timeout", help="Kill the builder after N seconds (default: wait)"),
    fetch_timeout: float = typer.Option(None, "--fetch-timeout", help="Archive request timeout in seconds (default: wait)"),
    env_file: Path = typer.Option(None, "--env-file", help="Load deployment variables from this .env file"),
    no_spinner: bool = typer.Option(False, "-q", "--no-spinner", help="Disable spinner output (quiet)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Echo builder output to the terminal"),
) -> None:
    """Fetch, patch, build and deploy an extension.

    Exit codes:
      0 - Success
      1 - Any failure (configuration, fetch, locate, build or deploy)
    """
    with RunContext("build") as run:
        exit_code = EXIT_SUCCESS
        try:
            cfg = load_config()
            settings = load_settings(env_file=env_file)
            request = build_request(
                cfg,
                settings,
                name=name,
                ref=ref,
                release=release,
                build_path=str(build_path) if build_path else None,
                deploy_path=str(deploy_path) if deploy_path else None,
                builder=builder,
                flat_layout=flat,
                use_local_source=local,
                local_source_path=str(local_path) if local_path else None,
                build_flags=flags or None,
                copy_policy=copy_policy,
                build_timeout=build_timeout,
                fetch_timeout=fetch_timeout,
            )
            run.log_event({"event": "build.request", **request.to_dict()})
            activity("build", f"Building {request.name} release {request.release} ({request.builder.value} builder)")

            result = run_pipeline(request, run, no_spinner=no_spinner, echo_output=verbose)

            activity("report", f"Deployed {request.name} to {request.deploy_path}")
            run.write_summary(status="success", exit_code=EXIT_SUCCESS, **result.to_dict())
        except ConfigError as e:
            exit_code = phase_error(run, "config", e)
        except ExtbuildError as e:
            # Already reported against its phase by the pipeline.
            exit_code = e.exit_code
        except Exception as e:
            activity("report", f"Build failed: {e}")
            for line in traceback.format_exc().splitlines():
                activity("report", f"  {line}")
            run.log_event({"event": "build.exception", "error": str(e), "traceback": traceback.format_exc()})
            run.write_summary(status="failed", error=str(e), exit_code=EXIT_FAILURE)
            exit_code = EXIT_FAILURE

    sys.exit(exit_code)
