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

"""Event and error reporting helpers for pipeline phases."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from extbuild.core.exceptions import ExtbuildError
from extbuild.core.run import activity

if TYPE_CHECKING:
    from extbuild.core.run import RunContext

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def log_phase_event(
    run: RunContext | None,
    phase: str,
    message: str,
    event_key: str,
    **event_data: Any,
) -> None:
    """Log a human-readable activity line and a structured event together.

    Example:
        log_phase_event(
            run, "locate", f"Build root: {root}",
            "locate.build_root",
            path=str(root),
        )
    """
    activity(phase, message)
    if run is not None:
        run.log_event({"event": event_key, **event_data})


def phase_warning(
    run: RunContext | None,
    phase: str,
    message: str,
    *,
    event_key: str | None = None,
    **event_data: Any,
) -> None:
    """Log a phase warning without affecting exit status."""
    activity(phase, f"Warning: {message}")
    if run is not None:
        run.log_event({"event": event_key or f"{phase}.warning", "message": message, **event_data})


def phase_error(run: RunContext | None, phase: str, error: ExtbuildError) -> int:
    """Report a fatal pipeline error and return the process exit code.

    Logs the error to the terminal, records a ``{phase}.error`` event and
    marks the run summary as failed.
    """
    activity(phase, f"ERROR: {error}")
    if run is not None:
        event: dict[str, Any] = {
            "event": f"{phase}.error",
            "error_type": type(error).__name__,
            "message": error.message,
            "exit_code": error.exit_code,
        }
        for key in ("url", "status_code", "path", "tool_exit_code", "command", "timed_out"):
            if hasattr(error, key):
                event[key] = getattr(error, key)
        run.log_event(event)
        run.write_summary(status="failed", error=str(error), error_type=type(error).__name__, exit_code=error.exit_code)
    return error.exit_code
