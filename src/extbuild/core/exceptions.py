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

"""Extbuild-specific exception types with associated exit codes.

Every pipeline stage raises one of these and lets it propagate to the
``build`` command, which logs it and exits with ``exit_code``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ExtbuildError(Exception):
    """Base class for Extbuild errors with an exit code."""

    message: str = "An error occurred"
    exit_code: int = field(default=1)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


@dataclass
class ConfigError(ExtbuildError):
    """Required configuration is missing or invalid."""


@dataclass
class FetchError(ExtbuildError):
    """The source archive could not be fetched."""

    url: str = ""
    status_code: int | None = None


@dataclass
class ExtractError(ExtbuildError):
    """The downloaded archive could not be decompressed."""

    archive_path: str = ""


@dataclass
class NotFoundError(ExtbuildError):
    """An expected file or directory convention is absent from the tree."""

    search_root: str = ""
    pattern: str = ""


@dataclass
class VersionFileError(ExtbuildError):
    """The version file could not be read or rewritten."""

    path: str = ""


@dataclass
class LaunchError(ExtbuildError):
    """The external build process could not be started."""

    command: list[str] = field(default_factory=list)


@dataclass
class BuildToolError(ExtbuildError):
    """The external build process ran but did not exit cleanly."""

    tool_exit_code: int = -1
    command: list[str] = field(default_factory=list)
    output_tail: str = ""
    timed_out: bool = False


@dataclass
class CopyReadError(ExtbuildError):
    """An artifact could not be read from the build root."""

    path: str = ""


@dataclass
class CopyWriteError(ExtbuildError):
    """An artifact could not be written to the deploy path."""

    path: str = ""


@dataclass
class ArtifactDeployError(ExtbuildError):
    """One or more artifacts failed to deploy under the collect policy."""

    failures: list[ExtbuildError] = field(default_factory=list)
