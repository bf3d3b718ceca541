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

"""TTY-aware spinner for pipeline phases.

Uses a Rich status spinner when the real terminal is a TTY and plain
``[phase] text`` lines otherwise. Output goes to sys.__stdout__ so it never
lands in a run's captured log files.
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Iterator

from rich.console import Console


def is_tty() -> bool:
    """Return True if the real stdout is a TTY."""
    try:
        if sys.__stdout__ is None:
            return False  # pragma: no cover
        return sys.__stdout__.isatty()
    except Exception:
        return False


@contextlib.contextmanager
def activity_spinner(phase: str, description: str, disable: bool = False) -> Iterator[None]:
    """Show a spinner while the wrapped block runs.

    Args:
        phase: Short phase label (e.g. "fetch", "build").
        description: Human-readable description of the current activity.
        disable: Force plain output even on a TTY.

    The activity line is printed once the block completes (TTY) or
    immediately (non-TTY). A failed block is reported with a FAILED suffix
    and the exception is re-raised.
    """
    text = f"[{phase}] {description}"

    if disable or not is_tty():
        with contextlib.suppress(Exception):
            print(text, file=sys.__stdout__, flush=True)
        yield
        return

    console = Console(file=sys.__stdout__, force_terminal=True)
    failed = False
    try:
        with console.status(text, spinner="dots"):
            yield
    except BaseException:
        failed = True
        raise
    finally:
        with contextlib.suppress(Exception):
            print(f"{text}{' FAILED' if failed else ''}", file=sys.__stdout__, flush=True)
