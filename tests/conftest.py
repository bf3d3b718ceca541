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

"""Pytest fixtures and configuration for Extbuild tests."""

from __future__ import annotations

import io
import stat
import tarfile
import tempfile
import zipfile
from collections.abc import Generator
from pathlib import Path
from unittest import mock

import pytest
import responses

SAMPLE_PM = """\
# See bottom of file for license and copyright information
package Foswiki::Plugins::FooPlugin;

use strict;
use warnings;

our $VERSION = '$Rev: 1234 (2012-01-01) $';
our $RELEASE = '1.0.0';
our $SHORTDESCRIPTION = 'Foo plugin';

1;
"""


@pytest.fixture
def temp_home(monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Create a temporary home directory and set HOME/XDG paths."""
    with tempfile.TemporaryDirectory() as tmpdir:
        home = Path(tmpdir)
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
        monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
        monkeypatch.setattr(Path, "home", lambda: home)
        yield home


@pytest.fixture
def mock_config(temp_home: Path) -> Path:
    """Create a minimal config file in the temp home."""
    config_dir = temp_home / ".config" / "extbuild"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / "config.yaml"
    config_file.write_text("""
paths:
  runs_root: "~/.cache/extbuild/runs"
  local_source: "/src"

defaults:
  builder: legacy
  flat_layout: false
  build_flags: []
  build_timeout: null
  output_limit: 1048576

fetch:
  api_host: api.github.com
  archive_format: zip
  timeout: null

deploy:
  copy_policy: abort
  description: ""
""")
    return config_file


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove deployment variables inherited from the developer's shell."""
    from extbuild.config import ENV_KEYS

    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("NODE_ENV", raising=False)


@pytest.fixture
def sample_pm() -> str:
    return SAMPLE_PM


def _write_executable(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def write_script():
    """Return a helper that writes an executable script."""
    return _write_executable


@pytest.fixture
def foo_source(tmp_path: Path) -> Path:
    """Local checkout of extension Foo using the modern build script.

    The build script writes Foo.tgz into the directory it runs in.
    """
    src = tmp_path / "src"
    (src / "Foo").mkdir(parents=True)
    (src / "Foo" / "Foo.pm").write_text(SAMPLE_PM)
    _write_executable(
        src / "build",
        "#!/bin/sh\n"
        "echo \"building release $1\"\n"
        "echo \"warning on stderr\" >&2\n"
        "printf 'tgz-%s' \"$1\" > Foo.tgz\n",
    )
    (src / ".git").mkdir()
    (src / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return src


@pytest.fixture
def zipball_bytes() -> bytes:
    """A zipball laid out like a source-host archive: one wrapper directory."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("org-FooPlugin-abc123/lib/Foswiki/Plugins/FooPlugin.pm", SAMPLE_PM)
        zf.writestr("org-FooPlugin-abc123/README", "readme\n")
    return buf.getvalue()


@pytest.fixture
def tarball_bytes() -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        data = SAMPLE_PM.encode()
        info = tarfile.TarInfo("org-FooPlugin-abc123/lib/Foswiki/Plugins/FooPlugin.pm")
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def mock_responses() -> Generator[responses.RequestsMock, None, None]:
    """Activate responses mock for HTTP requests."""
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def non_tty_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock sys.__stdout__.isatty() to return False."""
    mock_stdout = mock.MagicMock()
    mock_stdout.isatty.return_value = False
    monkeypatch.setattr("sys.__stdout__", mock_stdout)


@pytest.fixture
def tty_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock sys.__stdout__.isatty() to return True."""
    mock_stdout = mock.MagicMock()
    mock_stdout.isatty.return_value = True
    mock_stdout.write = lambda x: None
    mock_stdout.flush = lambda: None
    monkeypatch.setattr("sys.__stdout__", mock_stdout)
