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

"""Artifact deployment: copy build outputs to the deploy path."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from extbuild.core.exceptions import (
    ArtifactDeployError,
    CopyReadError,
    CopyWriteError,
    ExtbuildError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536

METADATA_SCHEMA_VERSION = "1.0"


class Synthesis(Enum):
    """What to write when the builder did not produce an artifact."""

    NONE = "none"
    INSTALLER = "installer"
    METADATA = "metadata"


@dataclass(frozen=True)
class ArtifactSpec:
    """An expected build output, relative to the build root."""

    name: str
    synthesize: Synthesis = Synthesis.NONE


@dataclass
class DeployedArtifact:
    name: str
    path: Path
    size: int
    synthesized: bool = False


@dataclass
class DeployResult:
    """Outcome of deploying an artifact set."""

    deploy_path: Path
    deployed: list[DeployedArtifact] = field(default_factory=list)
    failures: list[ExtbuildError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "deploy_path": str(self.deploy_path),
            "deployed": [
                {"name": a.name, "path": str(a.path), "size": a.size, "synthesized": a.synthesized}
                for a in self.deployed
            ],
            "failures": [str(f) for f in self.failures],
        }


def copy_artifact(src: Path, dst: Path) -> int:
    """Stream ``src`` to ``dst`` byte for byte and return the byte count.

    Raises:
        CopyReadError: If ``src`` is missing or unreadable.
        CopyWriteError: If ``dst`` cannot be opened or written.
    """
    try:
        reader = src.open("rb")
    except OSError as e:
        raise CopyReadError(message=f"Could not read file for copying: {src}", path=str(src)) from e

    with reader:
        try:
            writer = dst.open("wb")
        except OSError as e:
            raise CopyWriteError(message=f"Could not open target for copying: {dst}", path=str(dst)) from e

        size = 0
        with writer:
            while True:
                try:
                    chunk = reader.read(CHUNK_SIZE)
                except OSError as e:
                    raise CopyReadError(message=f"Could not read file for copying: {src}", path=str(src)) from e
                if not chunk:
                    break
                try:
                    writer.write(chunk)
                except OSError as e:
                    raise CopyWriteError(message=f"Could not write target: {dst}", path=str(dst)) from e
                size += len(chunk)
    return size


def build_metadata(release: str, description: str = "", now: datetime | None = None) -> dict[str, Any]:
    """Return the metadata descriptor for a release."""
    return {
        "description": description,
        "version": METADATA_SCHEMA_VERSION,
        "release": release,
        "date": (now or datetime.now(UTC)).isoformat(),
        "dependencies": [],
    }


def _write(dst: Path, data: bytes) -> int:
    try:
        dst.write_bytes(data)
    except OSError as e:
        raise CopyWriteError(message=f"Could not write target: {dst}", path=str(dst)) from e
    return len(data)


def write_metadata_descriptor(
    dst: Path, release: str, description: str = "", now: datetime | None = None
) -> int:
    blob = json.dumps(build_metadata(release, description, now), indent=2) + "\n"
    return _write(dst, blob.encode("utf-8"))


def write_installer_placeholder(dst: Path) -> int:
    return _write(dst, b"")


def deploy_artifacts(
    build_root: Path,
    deploy_path: Path,
    artifacts: list[ArtifactSpec],
    release: str,
    *,
    collect_failures: bool = False,
    description: str = "",
) -> DeployResult:
    """Copy each artifact from ``build_root`` to ``deploy_path``.

    Artifacts marked for synthesis are copied when the builder produced
    them and written from scratch otherwise.

    Args:
        build_root: Directory the builder ran in.
        deploy_path: Destination directory, created if missing.
        artifacts: Ordered artifact list from the builder strategy.
        release: Release string recorded in a synthesized metadata file.
        collect_failures: Attempt every artifact and raise one
            ArtifactDeployError at the end instead of stopping at the first
            failure.
        description: Description recorded in a synthesized metadata file.

    Raises:
        CopyReadError, CopyWriteError: First failure (abort policy).
        ArtifactDeployError: All failures (collect policy).
    """
    try:
        deploy_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CopyWriteError(message=f"Could not create deploy path {deploy_path}: {e}", path=str(deploy_path)) from e

    result = DeployResult(deploy_path=deploy_path)

    for spec in artifacts:
        src = build_root / spec.name
        dst = deploy_path / spec.name
        try:
            if spec.synthesize is not Synthesis.NONE and not src.exists():
                if spec.synthesize is Synthesis.INSTALLER:
                    size = write_installer_placeholder(dst)
                else:
                    size = write_metadata_descriptor(dst, release, description)
                logger.info("Synthesized %s", dst)
                result.deployed.append(DeployedArtifact(spec.name, dst, size, synthesized=True))
                continue

            size = copy_artifact(src, dst)
            logger.info("Copied %s -> %s (%d bytes)", src, dst, size)
            result.deployed.append(DeployedArtifact(spec.name, dst, size))
        except (CopyReadError, CopyWriteError) as e:
            if not collect_failures:
                raise
            logger.error("%s", e)
            result.failures.append(e)

    if result.failures:
        names = ", ".join(f.path for f in result.failures if isinstance(f, (CopyReadError, CopyWriteError)))
        raise ArtifactDeployError(
            message=f"{len(result.failures)} artifact(s) failed to deploy: {names}",
            failures=result.failures,
        )

    return result
