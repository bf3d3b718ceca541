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

"""Locate the version file and build root inside a materialized source tree.

Both lookups are first-match-wins over a lexicographically sorted candidate
list so the result does not depend on filesystem iteration order. Extra
candidates are logged as warnings rather than silently ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path

from extbuild.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

VERSION_FILE_SUFFIX = ".pm"


def version_file_name(name: str) -> str:
    return f"{name}{VERSION_FILE_SUFFIX}"


def locate_version_file(tree: Path, name: str) -> Path:
    """Find ``<name>.pm`` anywhere under ``tree``.

    Args:
        tree: Root of the materialized source tree.
        name: Extension name.

    Returns:
        Path to the first match in sorted order.

    Raises:
        NotFoundError: If no file matches.
    """
    filename = version_file_name(name)
    matches = sorted(p for p in tree.rglob(filename) if p.is_file())

    if not matches:
        raise NotFoundError(
            message=f"Version file {filename} not found under {tree}",
            search_root=str(tree),
            pattern=f"**/{filename}",
        )

    if len(matches) > 1:
        ignored = ", ".join(str(p) for p in matches[1:])
        logger.warning("Multiple %s files found; using %s and ignoring %s", filename, matches[0], ignored)

    return matches[0]


def locate_build_root(tree: Path, flat: bool = False) -> Path:
    """Return the directory the external builder runs in.

    Archives from the source host wrap their content in a single top-level
    directory, so by default the build root is the first immediate
    subdirectory of ``tree``. With ``flat`` the tree itself is the root.

    Raises:
        NotFoundError: If the resolved root does not exist or no
            subdirectory is present.
    """
    if flat:
        if not tree.is_dir():
            raise NotFoundError(
                message=f"Build root {tree} is not a directory",
                search_root=str(tree),
            )
        return tree

    if not tree.is_dir():
        raise NotFoundError(message=f"Source tree {tree} is not a directory", search_root=str(tree))

    subdirs = sorted(p for p in tree.iterdir() if p.is_dir())
    if not subdirs:
        raise NotFoundError(
            message=f"No top-level directory found in {tree}",
            search_root=str(tree),
            pattern="*/",
        )

    if len(subdirs) > 1:
        ignored = ", ".join(p.name for p in subdirs[1:])
        logger.warning("Multiple top-level directories in %s; using %s and ignoring %s", tree, subdirs[0].name, ignored)

    return subdirs[0]
