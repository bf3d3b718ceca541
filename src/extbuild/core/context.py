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

"""Request objects for Extbuild operations.

BuildRequest is created once at process start from configuration and handed
to the pipeline. It is frozen: stages derive what they need from it and never
modify it.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from extbuild.config import is_truthy
from extbuild.core.exceptions import ConfigError
from extbuild.source.patch import derive_release_string


class BuilderKind(Enum):
    """External build tool convention."""

    LEGACY = "legacy"
    MODERN = "modern"


class CopyPolicy(Enum):
    """How artifact copy failures are handled."""

    ABORT = "abort"
    COLLECT = "collect"


class ArchiveFormat(Enum):
    ZIP = "zip"
    TAR = "tar"

    @property
    def endpoint(self) -> str:
        return "zipball" if self is ArchiveFormat.ZIP else "tarball"

    @property
    def filename(self) -> str:
        return "archive.zip" if self is ArchiveFormat.ZIP else "archive.tar.gz"


@dataclass(frozen=True)
class SourceLocation:
    """Where the extension source comes from.

    Attributes:
        organization: Source-hosting organization (remote mode).
        repository: Repository name (remote mode).
        ref: Branch, tag or commit to fetch.
        token: Source-hosting auth token, sent as ``Authorization: token``.
        api_host: Host serving the archive endpoint.
        archive_format: zipball or tarball.
        use_local: Copy ``local_path`` instead of touching the network.
        local_path: Pre-mounted source directory for local mode.
    """

    organization: str = ""
    repository: str = ""
    ref: str = ""
    token: str = field(default="", repr=False)
    api_host: str = "api.github.com"
    archive_format: ArchiveFormat = ArchiveFormat.ZIP
    use_local: bool = False
    local_path: Path = Path("/src")


@dataclass(frozen=True)
class BuildRequest:
    """Immutable request describing one extension build.

    Attributes:
        name: Extension name; also names the version file and artifacts.
        source: Source location descriptor.
        release: Release string written into the version file.
        build_path: Working directory the source tree is materialized in.
        deploy_path: Directory artifacts are copied to.
        builder: Build tool convention.
        build_flags: Extra flags for the legacy builder.
        lib_path: Library path exported to the builder as FOSWIKI_LIBS.
        github_token: Source-hosting token exported to the builder.
        registry_token: Private package registry token exported to the builder.
        flat_layout: The tree root is the build root.
        copy_policy: Artifact copy failure handling.
        description: Description written into a synthesized metadata file.
        build_timeout: Seconds before the builder is killed; None waits forever.
        fetch_timeout: Seconds for the archive request; None waits forever.
        output_limit: Characters of builder output kept for error reports.
    """

    name: str
    source: SourceLocation
    release: str
    build_path: Path
    deploy_path: Path
    builder: BuilderKind = BuilderKind.LEGACY
    build_flags: tuple[str, ...] = ()
    lib_path: str = ""
    github_token: str = field(default="", repr=False)
    registry_token: str = field(default="", repr=False)
    flat_layout: bool = False
    copy_policy: CopyPolicy = CopyPolicy.ABORT
    description: str = ""
    build_timeout: float | None = None
    fetch_timeout: float | None = None
    output_limit: int = 1024 * 1024

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging/summary, with secrets redacted."""
        return {
            "name": self.name,
            "release": self.release,
            "source": {
                "organization": self.source.organization,
                "repository": self.source.repository,
                "ref": self.source.ref,
                "api_host": self.source.api_host,
                "archive_format": self.source.archive_format.value,
                "use_local": self.source.use_local,
                "local_path": str(self.source.local_path),
                "token": "***" if self.source.token else "",
            },
            "build_path": str(self.build_path),
            "deploy_path": str(self.deploy_path),
            "builder": self.builder.value,
            "build_flags": list(self.build_flags),
            "lib_path": self.lib_path,
            "github_token": "***" if self.github_token else "",
            "registry_token": "***" if self.registry_token else "",
            "flat_layout": self.flat_layout,
            "copy_policy": self.copy_policy.value,
            "build_timeout": self.build_timeout,
            "fetch_timeout": self.fetch_timeout,
            "output_limit": self.output_limit,
        }


def _enum_value(enum_cls: type[Enum], value: Any, option: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError as e:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(message=f"Invalid {option} '{value}' (expected one of: {choices})") from e


def _flags(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(shlex.split(value))
    return tuple(str(v) for v in value)


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return is_truthy(str(value))


def _optional_float(value: Any, option: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(message=f"Invalid {option} '{value}' (expected seconds)") from e


def build_request(
    cfg: Mapping[str, Any],
    settings: Mapping[str, Any],
    now: datetime | None = None,
    **overrides: Any,
) -> BuildRequest:
    """Resolve config defaults, environment settings and CLI overrides.

    Overrides whose value is None are ignored so unset CLI options fall back
    to the environment, then to the config file.
    Build, deploy and local source paths are made absolute against the
    current directory.

    Raises:
        ConfigError: If a required value is missing or malformed.
    """
    values: dict[str, Any] = dict(settings)
    values.update({k: v for k, v in overrides.items() if v is not None})

    defaults = cfg.get("defaults", {})
    fetch_cfg = cfg.get("fetch", {})
    deploy_cfg = cfg.get("deploy", {})
    paths_cfg = cfg.get("paths", {})

    name = values.get("name") or values.get("repository", "")
    if not name:
        raise ConfigError(message="Extension name is required (GITHUB_REPOSITORY or --name)")
    if not values.get("build_path"):
        raise ConfigError(message="Build path is required (BUILD_PATH or --build-path)")
    if not values.get("deploy_path"):
        raise ConfigError(message="Deploy path is required (DEPLOY_PATH or --deploy-path)")

    use_local = _bool(values.get("use_local_source", False))
    ref = values.get("ref", "")
    if not use_local:
        missing = [k for k in ("organization", "ref") if not values.get(k)]
        if missing:
            raise ConfigError(
                message=f"Remote source requires: {', '.join(missing)} (or USE_LOCAL_SOURCE=1)"
            )

    source = SourceLocation(
        organization=values.get("organization", ""),
        repository=values.get("repository", "") or name,
        ref=ref,
        token=values.get("github_token", ""),
        api_host=values.get("api_host") or fetch_cfg.get("api_host", "api.github.com"),
        archive_format=_enum_value(
            ArchiveFormat, values.get("archive_format") or fetch_cfg.get("archive_format", "zip"), "archive format"
        ),
        use_local=use_local,
        local_path=Path(values.get("local_source_path") or paths_cfg.get("local_source", "/src")).expanduser().resolve(),
    )

    release = values.get("release") or derive_release_string(ref, now)

    return BuildRequest(
        name=name,
        source=source,
        release=release,
        build_path=Path(values["build_path"]).expanduser().resolve(),
        deploy_path=Path(values["deploy_path"]).expanduser().resolve(),
        builder=_enum_value(BuilderKind, values.get("builder") or defaults.get("builder", "legacy"), "builder"),
        build_flags=_flags(values.get("build_flags", defaults.get("build_flags"))),
        lib_path=values.get("lib_path", ""),
        github_token=values.get("github_token", ""),
        registry_token=values.get("registry_token", ""),
        flat_layout=_bool(values.get("flat_layout", defaults.get("flat_layout", False))),
        copy_policy=_enum_value(
            CopyPolicy, values.get("copy_policy") or deploy_cfg.get("copy_policy", "abort"), "copy policy"
        ),
        description=values.get("description") or deploy_cfg.get("description") or "",
        build_timeout=_optional_float(values.get("build_timeout", defaults.get("build_timeout")), "build timeout"),
        fetch_timeout=_optional_float(values.get("fetch_timeout", fetch_cfg.get("timeout")), "fetch timeout"),
        output_limit=int(values.get("output_limit") or defaults.get("output_limit") or 1024 * 1024),
    )
