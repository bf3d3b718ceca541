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

"""The fetch -> locate -> patch -> build -> deploy pipeline.

Stages run strictly in order and each one completes before the next starts.
Any ExtbuildError aborts the pipeline: it is reported against the phase that
raised it and then re-raised to the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

from extbuild.build.env import get_build_env
from extbuild.build.errors import log_phase_event, phase_error, phase_warning
from extbuild.build.invoker import InvocationResult, invoke
from extbuild.build.strategies import get_strategy
from extbuild.core.context import BuildRequest, CopyPolicy
from extbuild.core.exceptions import ExtbuildError
from extbuild.core.run import activity
from extbuild.core.spinner import activity_spinner
from extbuild.deploy.artifacts import DeployResult, deploy_artifacts
from extbuild.source.locate import locate_build_root, locate_version_file
from extbuild.source.patch import PatchResult, patch_version_file
from extbuild.upstream.fetch import fetch_source

if TYPE_CHECKING:
    from extbuild.core.run import RunContext


@dataclass
class PipelineResult:
    """Everything the pipeline produced for one build."""

    request: BuildRequest
    tree: Path | None = None
    version_file: Path | None = None
    build_root: Path | None = None
    patch: PatchResult | None = None
    invocation: InvocationResult | None = None
    deploy: DeployResult | None = None
    phases: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "request": self.request.to_dict(),
            "tree": str(self.tree) if self.tree else None,
            "version_file": str(self.version_file) if self.version_file else None,
            "build_root": str(self.build_root) if self.build_root else None,
            "release_replaced": self.patch.release_replaced if self.patch else None,
            "version_replaced": self.patch.version_replaced if self.patch else None,
            "build_command": self.invocation.command if self.invocation else None,
            "build_seconds": self.invocation.duration_seconds if self.invocation else None,
            "deploy": self.deploy.to_dict() if self.deploy else None,
            "phases": list(self.phases),
        }


def run_pipeline(
    request: BuildRequest,
    run: RunContext | None = None,
    *,
    session: requests.Session | None = None,
    base_env: Mapping[str, str] | None = None,
    no_spinner: bool = False,
    echo_output: bool = False,
) -> PipelineResult:
    """Fetch, patch, build and deploy the extension described by ``request``.

    Args:
        request: The immutable build request.
        run: Optional RunContext receiving structured events.
        session: HTTP session for the archive download.
        base_env: Environment the builder's environment is derived from;
            defaults to the process environment.
        no_spinner: Disable spinner output.
        echo_output: Echo builder output lines to the terminal.

    Returns:
        PipelineResult describing every stage.

    Raises:
        ExtbuildError: From the first stage that fails.
    """
    result = PipelineResult(request=request)
    strategy = get_strategy(request.builder)
    phase = "fetch"

    try:
        # Fetch
        source = request.source
        what = f"local source {source.local_path}" if source.use_local else (
            f"{source.organization}/{source.repository}@{source.ref}"
        )
        if run:
            run.log_event({"event": "fetch.start", "source": request.to_dict()["source"]})
        with activity_spinner("fetch", f"Fetching {what}", disable=no_spinner):
            result.tree = fetch_source(source, request.build_path, session=session, timeout=request.fetch_timeout)
        result.phases.append(phase)
        log_phase_event(run, "fetch", f"Source tree at {result.tree}", "fetch.done", path=str(result.tree))

        # Locate
        phase = "locate"
        result.version_file = locate_version_file(result.tree, request.name)
        result.build_root = locate_build_root(result.tree, flat=request.flat_layout)
        result.phases.append(phase)
        log_phase_event(
            run, "locate", f"Build root: {result.build_root}",
            "locate.done",
            version_file=str(result.version_file),
            build_root=str(result.build_root),
        )

        # Patch
        phase = "patch"
        result.patch = patch_version_file(result.version_file, request.release)
        if not result.patch.release_replaced:
            phase_warning(run, "patch", f"No $RELEASE declaration in {result.version_file}", path=str(result.version_file))
        result.phases.append(phase)
        log_phase_event(
            run, "patch", f"Release {request.release} -> {result.version_file.name}",
            "patch.done",
            release=request.release,
            release_replaced=result.patch.release_replaced,
            version_replaced=result.patch.version_replaced,
        )

        # Build
        phase = "build"
        command = strategy.build_command(request, result.version_file)
        env = get_build_env(request, base_env)
        if run:
            run.log_event({"event": "build.start", "command": command, "cwd": str(result.build_root)})

        def _echo(stream: str, line: str) -> None:
            activity("build", line)

        with activity_spinner("build", " ".join(command), disable=no_spinner or echo_output):
            result.invocation = invoke(
                command,
                result.build_root,
                env,
                timeout=request.build_timeout,
                output_limit=request.output_limit,
                on_line=_echo if echo_output else None,
            )
        result.phases.append(phase)
        log_phase_event(
            run, "build", f"Builder finished in {result.invocation.duration_seconds:.1f}s",
            "build.done",
            exit_code=result.invocation.exit_code,
            duration_seconds=result.invocation.duration_seconds,
        )

        # Deploy
        phase = "deploy"
        with activity_spinner("deploy", f"Deploying to {request.deploy_path}", disable=no_spinner):
            result.deploy = deploy_artifacts(
                result.build_root,
                request.deploy_path,
                strategy.artifacts(request.name),
                request.release,
                collect_failures=request.copy_policy is CopyPolicy.COLLECT,
                description=request.description,
            )
        result.phases.append(phase)
        log_phase_event(
            run, "deploy", f"Deployed {len(result.deploy.deployed)} artifact(s) to {request.deploy_path}",
            "deploy.done",
            **result.deploy.to_dict(),
        )
    except ExtbuildError as e:
        phase_error(run, phase, e)
        raise

    return result
