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

"""Rewrite release metadata in an extension's version file.

Foswiki extensions declare their release in the main ``<Name>.pm`` module:

    our $VERSION = '$Rev: 1234 $';
    our $RELEASE = '1.0.0';

The RELEASE value is always replaced. VERSION is only replaced when it
still holds a Subversion ``$Rev`` keyword; real version numbers are left
alone. Only the first matching line of each declaration is touched and
everything else in the file is preserved byte for byte.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from extbuild.core.exceptions import VersionFileError

logger = logging.getLogger(__name__)

RELEASE_RE = re.compile(r"""^(\s*(?:our\s*)?\$RELEASE\s*=\s*['"]).*(['"]\s*;)""", re.MULTILINE)
SVN_VERSION_RE = re.compile(r"""^(\s*(?:our\s*)?\$VERSION\s*=\s*['"])\$Rev.*(['"]\s*;)""", re.MULTILINE)

# Refs such as q1.2.3 carry a release number after a one-letter prefix.
RELEASE_REF_RE = re.compile(r"q\d+.\d+.\d+")


@dataclass
class PatchResult:
    """Outcome of patching a version file."""

    path: Path
    release_replaced: bool = False
    version_replaced: bool = False

    @property
    def changed(self) -> bool:
        return self.release_replaced or self.version_replaced


def _substitute(pattern: re.Pattern[str], content: str, release: str) -> tuple[str, bool]:
    # A callable replacement keeps backslashes in the release string literal.
    new, count = pattern.subn(lambda m: f"{m.group(1)}{release}{m.group(2)}", content, count=1)
    return new, count > 0


def patch_text(content: str, release: str) -> tuple[str, bool, bool]:
    """Return (new_content, release_replaced, version_replaced)."""
    content, release_replaced = _substitute(RELEASE_RE, content, release)
    content, version_replaced = _substitute(SVN_VERSION_RE, content, release)
    return content, release_replaced, version_replaced


def patch_version_file(path: Path, release: str) -> PatchResult:
    """Write ``release`` into the RELEASE (and legacy VERSION) declarations.

    A file with neither declaration is left untouched; that is not an error.
    Line endings are kept as found.

    Raises:
        VersionFileError: If the file cannot be read as UTF-8 or rewritten.
    """
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            original = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise VersionFileError(message=f"Could not read version file {path}: {e}", path=str(path)) from e

    content, release_replaced, version_replaced = patch_text(original, release)

    if not release_replaced:
        logger.warning("No $RELEASE declaration found in %s", path)

    if content != original:
        try:
            with path.open("w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise VersionFileError(message=f"Could not write version file {path}: {e}", path=str(path)) from e

    return PatchResult(path=path, release_replaced=release_replaced, version_replaced=version_replaced)


def derive_release_string(ref: str, now: datetime | None = None) -> str:
    """Derive a release string when none is configured.

    Release refs like ``q2.1.0`` yield ``2.1.0``; anything else yields the
    current UTC time in ISO-8601 form.

    Examples:
        >>> derive_release_string("q2.1.0")
        '2.1.0'
    """
    if RELEASE_REF_RE.search(ref or ""):
        return ref[1:]
    return (now or datetime.now(UTC)).isoformat()
