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

"""Tests for extbuild.build.pipeline module."""

from __future__ import annotations

import io
import json
import os
import shutil
import zipfile
from pathlib import Path

import pytest
import responses

from extbuild.build.pipeline import run_pipeline
from extbuild.core.context import (
    BuilderKind,
    BuildRequest,
    CopyPolicy,
    SourceLocation,
)
from extbuild.core.exceptions import BuildToolError, NotFoundError, VersionFileError

BUILD_PL = """\
use strict;
die "expected release subcommand" unless $ARGV[0] eq 'release';
die "FOSWIKI_LIBS not set" unless $ENV{FOSWIKI_LIBS};
for my $f ('Foo.tgz', 'Foo_installer', 'Foo.txt') {
    open(my $fh, '>', $f) or die;
    print $fh "legacy $f";
    close($fh);
}
print "built\\n";
"""


def _local_request(src: Path, tmp_path: Path, **kwargs: object) -> BuildRequest:
    values: dict[str, object] = {
        "name": "Foo",
        "source": SourceLocation(use_local=True, local_path=src),
        "release": "2024.06.01",
        "build_path": tmp_path / "build",
        "deploy_path": tmp_path / "deploy",
        "builder": BuilderKind.MODERN,
        "flat_layout": True,
    }
    values.update(kwargs)
    return BuildRequest(**values)  # type: ignore[arg-type]


class TestRunPipelineLocal:
    """End-to-end runs against a local modern-builder checkout."""

    def test_builds_and_deploys(self, tmp_path: Path, foo_source: Path) -> None:
        request = _local_request(foo_source, tmp_path)

        result = run_pipeline(request, no_spinner=True)

        deploy = tmp_path / "deploy"
        assert (deploy / "Foo.tgz").read_bytes() == b"tgz-2024.06.01"
        assert (deploy / "Foo_installer").read_bytes() == b""
        meta = json.loads((deploy / "metadata.json").read_text())
        assert meta["release"] == "2024.06.01"
        assert result.phases == ["fetch", "locate", "patch", "build", "deploy"]

    def test_version_file_patched_in_build_tree_only(self, tmp_path: Path, foo_source: Path) -> None:
        original = (foo_source / "Foo" / "Foo.pm").read_text()

        run_pipeline(_local_request(foo_source, tmp_path), no_spinner=True)

        patched = (tmp_path / "build" / "Foo" / "Foo.pm").read_text()
        assert "our $RELEASE = '2024.06.01';" in patched
        assert (foo_source / "Foo" / "Foo.pm").read_text() == original

    def test_builder_failure_stops_before_deploy(
        self, tmp_path: Path, foo_source: Path, write_script
    ) -> None:
        write_script(foo_source / "build", "#!/bin/sh\necho failing >&2\nexit 2\n")

        with pytest.raises(BuildToolError) as exc_info:
            run_pipeline(_local_request(foo_source, tmp_path), no_spinner=True)

        assert exc_info.value.tool_exit_code == 2
        assert not (tmp_path / "deploy").exists()

    def test_missing_version_file_fails_before_build(
        self, tmp_path: Path, foo_source: Path, write_script
    ) -> None:
        (foo_source / "Foo" / "Foo.pm").unlink()
        marker = tmp_path / "builder-ran"
        write_script(foo_source / "build", f"#!/bin/sh\ntouch {marker}\n")

        with pytest.raises(NotFoundError):
            run_pipeline(_local_request(foo_source, tmp_path), no_spinner=True)

        assert not marker.exists()

    def test_build_env_strips_node_env(
        self, tmp_path: Path, foo_source: Path, write_script
    ) -> None:
        write_script(
            foo_source / "build",
            "#!/bin/sh\n"
            "[ -z \"$NODE_ENV\" ] || exit 9\n"
            "[ \"$NPM_AUTH_TOKEN\" = npm-token ] || exit 8\n"
            "touch Foo.tgz\n",
        )
        base_env = {**os.environ, "NODE_ENV": "production"}
        request = _local_request(foo_source, tmp_path, registry_token="npm-token")

        run_pipeline(request, base_env=base_env, no_spinner=True)

        assert (tmp_path / "deploy" / "Foo.tgz").exists()

    def test_records_events(self, tmp_path: Path, foo_source: Path) -> None:
        events: list[dict] = []

        class _Run:
            def log_event(self, event: dict) -> None:
                events.append(event)

            def write_summary(self, **kwargs: object) -> None:
                pass

        run_pipeline(_local_request(foo_source, tmp_path), _Run(), no_spinner=True)  # type: ignore[arg-type]

        keys = [e["event"] for e in events]
        for phase in ("fetch", "locate", "patch", "build", "deploy"):
            assert f"{phase}.done" in keys

    def test_missing_release_declaration_warns(self, tmp_path: Path, foo_source: Path) -> None:
        (foo_source / "Foo" / "Foo.pm").write_text("package Foo;\n1;\n")
        events: list[dict] = []

        class _Run:
            def log_event(self, event: dict) -> None:
                events.append(event)

            def write_summary(self, **kwargs: object) -> None:
                pass

        run_pipeline(_local_request(foo_source, tmp_path), _Run(), no_spinner=True)  # type: ignore[arg-type]

        assert "patch.warning" in [e["event"] for e in events]
        assert (tmp_path / "deploy" / "Foo.tgz").exists()

    def test_undecodable_version_file_reported_as_patch_error(self, tmp_path: Path, foo_source: Path) -> None:
        (foo_source / "Foo" / "Foo.pm").write_bytes("# Caf\u00e9\nour $RELEASE = '1';\n".encode("latin-1"))
        events: list[dict] = []

        class _Run:
            def log_event(self, event: dict) -> None:
                events.append(event)

            def write_summary(self, **kwargs: object) -> None:
                pass

        with pytest.raises(VersionFileError):
            run_pipeline(_local_request(foo_source, tmp_path), _Run(), no_spinner=True)  # type: ignore[arg-type]

        errors = [e for e in events if e["event"] == "patch.error"]
        assert errors and errors[0]["error_type"] == "VersionFileError"

    def test_failure_records_phase_error(self, tmp_path: Path, foo_source: Path) -> None:
        (foo_source / "Foo" / "Foo.pm").unlink()
        events: list[dict] = []
        summaries: list[dict] = []

        class _Run:
            def log_event(self, event: dict) -> None:
                events.append(event)

            def write_summary(self, **kwargs: object) -> None:
                summaries.append(kwargs)

        with pytest.raises(NotFoundError):
            run_pipeline(_local_request(foo_source, tmp_path), _Run(), no_spinner=True)  # type: ignore[arg-type]

        errors = [e for e in events if e["event"] == "locate.error"]
        assert errors and errors[0]["error_type"] == "NotFoundError"
        assert summaries[-1]["status"] == "failed"


@pytest.mark.skipif(shutil.which("perl") is None, reason="perl not installed")
class TestRunPipelineRemoteLegacy:
    """End-to-end run of a remote zipball with the legacy Perl builder."""

    URL = "https://api.github.com/repos/foswiki/Foo/zipball/q1.2.3"

    @pytest.fixture
    def zipball(self, sample_pm: str) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("foswiki-Foo-abc/Foo.pm", sample_pm)
            zf.writestr("foswiki-Foo-abc/Foo/build.pl", BUILD_PL)
        return buf.getvalue()

    @responses.activate
    def test_builds_and_deploys(self, tmp_path: Path, zipball: bytes) -> None:
        responses.add(responses.GET, self.URL, body=zipball, status=200)
        request = BuildRequest(
            name="Foo",
            source=SourceLocation(organization="foswiki", repository="Foo", ref="q1.2.3", token="t"),
            release="1.2.3",
            build_path=tmp_path / "build",
            deploy_path=tmp_path / "deploy",
            builder=BuilderKind.LEGACY,
            lib_path="/opt/foswiki/lib",
            copy_policy=CopyPolicy.ABORT,
        )

        result = run_pipeline(request, no_spinner=True)

        assert result.build_root == tmp_path / "build" / "foswiki-Foo-abc"
        for name in ("Foo.tgz", "Foo_installer", "Foo.txt"):
            assert (tmp_path / "deploy" / name).read_text() == f"legacy {name}"
        pm = (result.build_root / "Foo.pm").read_text()
        assert "our $RELEASE = '1.2.3';" in pm


@pytest.mark.skipif(shutil.which("perl") is None, reason="perl not installed")
class TestRunPipelineLocalLegacy:
    """Legacy Perl builds of a local checkout."""

    def test_relative_build_path(
        self, tmp_path: Path, sample_pm: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        src = tmp_path / "src"
        (src / "Foo-abc" / "Foo").mkdir(parents=True)
        (src / "Foo-abc" / "Foo.pm").write_text(sample_pm)
        (src / "Foo-abc" / "Foo" / "build.pl").write_text(BUILD_PL)
        monkeypatch.chdir(tmp_path)
        request = BuildRequest(
            name="Foo",
            source=SourceLocation(use_local=True, local_path=src),
            release="1.2.3",
            build_path=Path("work"),
            deploy_path=Path("deploy"),
            builder=BuilderKind.LEGACY,
            lib_path="/opt/foswiki/lib",
        )

        run_pipeline(request, no_spinner=True)

        assert (tmp_path / "deploy" / "Foo.tgz").read_text() == "legacy Foo.tgz"
