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

"""Build tool conventions.

Two generations of extension tooling coexist:

- legacy: the Perl BuildContrib driver, ``perl <dir>/<Name>/build.pl release``,
  which produces the archive, installer and a ``<Name>.txt`` topic itself.
- modern: a self-contained ``./build <release>`` script that produces only
  the archive; the installer placeholder and ``metadata.json`` are written
  by the deployer when missing.

The strategy is chosen once from configuration; the pipeline only asks it
for a command line and an artifact list.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from extbuild.core.context import BuilderKind, BuildRequest
from extbuild.deploy.artifacts import ArtifactSpec, Synthesis


@dataclass(frozen=True)
class BuilderStrategy:
    """Command line and artifact conventions of one build tool generation."""

    kind: BuilderKind

    def build_command(self, request: BuildRequest, version_file: Path) -> list[str]:
        """Compose the builder invocation.

        Args:
            request: Build request supplying name, release and flags.
            version_file: Located ``<name>.pm``; the legacy driver lives in
                the ``<name>/`` directory beside it.
        """
        if self.kind is BuilderKind.LEGACY:
            # The builder runs inside the build root, so the script path must be absolute.
            build_script = version_file.resolve().parent / request.name / "build.pl"
            return ["perl", str(build_script), "release", *request.build_flags]
        return ["./build", request.release]

    def artifacts(self, name: str) -> list[ArtifactSpec]:
        """Return the ordered artifact list for extension ``name``."""
        if self.kind is BuilderKind.LEGACY:
            return [
                ArtifactSpec(f"{name}.tgz"),
                ArtifactSpec(f"{name}_installer"),
                ArtifactSpec(f"{name}.txt"),
            ]
        return [
            ArtifactSpec(f"{name}.tgz"),
            ArtifactSpec(f"{name}_installer", synthesize=Synthesis.INSTALLER),
            ArtifactSpec("metadata.json", synthesize=Synthesis.METADATA),
        ]


def get_strategy(kind: BuilderKind) -> BuilderStrategy:
    return BuilderStrategy(kind=kind)
