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

"""Run the external build tool and stream its output.

Standard output and standard error are read on two threads and forwarded
line by line to the ``extbuild.build.output`` logger as they arrive, so the
relative order of lines from the two streams is only best effort. A bounded
tail of the combined output is kept for error reports; older lines are
trimmed once it exceeds ``output_limit`` characters. Lines longer than 64 KiB
are forwarded in pieces.

Only the exit status decides success. Output is never inspected.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from extbuild.core.exceptions import BuildToolError, LaunchError

logger = logging.getLogger(__name__)
output_logger = logging.getLogger("extbuild.build.output")

DEFAULT_OUTPUT_LIMIT = 1024 * 1024
READ_CHUNK = 64 * 1024

LineCallback = Callable[[str, str], None]


@dataclass
class InvocationResult:
    """Result of a successful builder run."""

    command: list[str]
    exit_code: int
    duration_seconds: float
    output_tail: str = ""
    truncated: bool = False


class OutputTail:
    """Thread-safe buffer holding the last ``limit`` characters of output."""

    def __init__(self, limit: int = DEFAULT_OUTPUT_LIMIT) -> None:
        self.limit = limit
        self._chunks: deque[str] = deque()
        self._size = 0
        self._lock = threading.Lock()
        self.truncated = False

    def append(self, chunk: str) -> None:
        with self._lock:
            self._chunks.append(chunk)
            self._size += len(chunk)
            while self._size > self.limit:
                excess = self._size - self.limit
                head = self._chunks[0]
                if len(head) <= excess:
                    self._chunks.popleft()
                    self._size -= len(head)
                else:
                    self._chunks[0] = head[excess:]
                    self._size -= excess
                self.truncated = True

    def text(self) -> str:
        with self._lock:
            return "".join(self._chunks)


def _pump(stream: IO[str], label: str, tail: OutputTail, on_line: LineCallback | None) -> None:
    # readline(size) bounds memory for output that never emits a newline.
    with stream:
        for line in iter(lambda: stream.readline(READ_CHUNK), ""):
            tail.append(line)
            text = line.rstrip("\n")
            output_logger.info("[%s] %s", label, text)
            if on_line is not None:
                on_line(label, text)


def invoke(
    command: Sequence[str],
    cwd: Path,
    env: Mapping[str, str],
    *,
    timeout: float | None = None,
    output_limit: int = DEFAULT_OUTPUT_LIMIT,
    on_line: LineCallback | None = None,
) -> InvocationResult:
    """Run ``command`` in ``cwd`` with ``env`` and wait for it to exit.

    Args:
        command: Command and arguments.
        cwd: Working directory (the build root).
        env: Complete environment for the child process.
        timeout: Seconds to wait before killing the process. None waits
            indefinitely.
        output_limit: Characters of trailing output kept for reporting.
        on_line: Optional callback receiving ``(stream, line)`` for each line.

    Returns:
        InvocationResult when the process exits with status 0.

    Raises:
        LaunchError: If the process cannot be started or its pipes attached.
        BuildToolError: If the process exits nonzero or times out.
    """
    cmd = [str(c) for c in command]
    logger.info("Running %s in %s", " ".join(cmd), cwd)
    started = time.monotonic()

    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=dict(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise LaunchError(message=f"Could not start {cmd[0]}: {e}", command=cmd) from e

    if proc.stdout is None or proc.stderr is None:  # pragma: no cover - PIPE always attaches
        proc.kill()
        proc.wait()
        raise LaunchError(message=f"Could not attach output streams of {cmd[0]}", command=cmd)

    tail = OutputTail(output_limit)
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, "stdout", tail, on_line), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, "stderr", tail, on_line), daemon=True),
    ]
    for reader in readers:
        reader.start()

    timed_out = False
    try:
        exit_code = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        proc.kill()
        exit_code = proc.wait()
    finally:
        for reader in readers:
            reader.join()

    duration = time.monotonic() - started

    if timed_out:
        raise BuildToolError(
            message=f"{cmd[0]} timed out after {timeout} seconds",
            tool_exit_code=exit_code,
            command=cmd,
            output_tail=tail.text(),
            timed_out=True,
        )

    if exit_code != 0:
        raise BuildToolError(
            message=f"{' '.join(cmd)} exited with code {exit_code}",
            tool_exit_code=exit_code,
            command=cmd,
            output_tail=tail.text(),
        )

    logger.info("%s finished in %.1fs", cmd[0], duration)
    return InvocationResult(
        command=cmd,
        exit_code=exit_code,
        duration_seconds=duration,
        output_tail=tail.text(),
        truncated=tail.truncated,
    )
