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

"""Materialize an extension source tree in the build path.

Remote mode downloads a zipball or tarball from the source host's archive
endpoint and extracts it. Local mode copies a pre-mounted checkout instead,
dropping version-control metadata and dereferencing symlinks so the tree is
self-contained.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import requests

from extbuild.core.context import ArchiveFormat, SourceLocation
from extbuild.core.exceptions import ExtractError, FetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536

VCS_DIRS = (".git", ".svn", ".hg", ".bzr", "CVS")


@dataclass
class DownloadResult:
    """Result of an archive download."""

    url: str
    path: Path
    size: int = 0
    status_code: int = 0


class ArchiveFetcher:
    """Downloads source archives from the source host's REST API."""

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def build_url(self, source: SourceLocation) -> str:
        """Build the archive URL for a source location.

        Layout: https://{host}/repos/{org}/{repo}/{zipball|tarball}/{ref}
        """
        host = source.api_host.rstrip("/")
        if "://" not in host:
            host = f"https://{host}"
        return (
            f"{host}/repos/{source.organization}/{source.repository}/"
            f"{source.archive_format.endpoint}/{source.ref}"
        )

    def download(self, source: SourceLocation, dest: Path) -> DownloadResult:
        """Stream the archive for ``source`` to ``dest``.

        Raises:
            FetchError: On transport failure or a non-2xx response.
        """
        url = self.build_url(source)
        headers: dict[str, str] = {}
        if source.token:
            headers["Authorization"] = f"token {source.token}"

        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise FetchError(message=f"Failed to fetch {url}: {e}", url=url) from e

        with resp:
            if not resp.ok:
                raise FetchError(
                    message=f"Failed to fetch {url}: HTTP {resp.status_code} {resp.reason}",
                    url=url,
                    status_code=resp.status_code,
                )

            dest.parent.mkdir(parents=True, exist_ok=True)
            size = 0
            try:
                with dest.open("wb") as f:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        size += len(chunk)
            except requests.RequestException as e:
                raise FetchError(message=f"Download of {url} interrupted: {e}", url=url) from e
            except OSError as e:
                raise FetchError(message=f"Could not write archive to {dest}: {e}", url=url) from e

        logger.debug("Downloaded %s (%d bytes) to %s", url, size, dest)
        return DownloadResult(url=url, path=dest, size=size, status_code=resp.status_code)


def _check_zip_member(name: str) -> bool:
    path = PurePosixPath(name)
    return not path.is_absolute() and ".." not in path.parts


def _restore_exec_bits(zf: zipfile.ZipFile, output_path: Path) -> None:
    # zipfile drops Unix permissions; build scripts must stay executable.
    for info in zf.infolist():
        mode = (info.external_attr >> 16) & 0o777
        if mode & 0o111 and not info.is_dir():
            target = output_path / info.filename
            target.chmod(target.stat().st_mode | (mode & 0o111))


def extract_archive(archive_path: Path, output_path: Path, archive_format: ArchiveFormat) -> None:
    """Extract a downloaded archive into ``output_path``.

    Raises:
        ExtractError: If the archive is corrupt or contains unsafe members.
    """
    output_path.mkdir(parents=True, exist_ok=True)
    try:
        if archive_format is ArchiveFormat.ZIP:
            with zipfile.ZipFile(archive_path) as zf:
                unsafe = [n for n in zf.namelist() if not _check_zip_member(n)]
                if unsafe:
                    raise ExtractError(
                        message=f"Refusing to extract unsafe paths from {archive_path}: {', '.join(unsafe)}",
                        archive_path=str(archive_path),
                    )
                zf.extractall(output_path)
                _restore_exec_bits(zf, output_path)
        else:
            with tarfile.open(archive_path, "r:*") as tar:
                tar.extractall(path=output_path, filter="data")
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as e:
        raise ExtractError(
            message=f"Failed to extract {archive_path}: {e}",
            archive_path=str(archive_path),
        ) from e


def _ignore_vcs(directory: str, names: list[str]) -> set[str]:
    return {n for n in names if n in VCS_DIRS}


def copy_local_source(local_path: Path, output_path: Path) -> None:
    """Copy a local checkout into ``output_path``.

    Symlinks are replaced by the content they point at and dangling links
    are dropped. Version-control directories are not copied.

    Raises:
        FetchError: If ``local_path`` is not a directory or the copy fails.
    """
    if not local_path.is_dir():
        raise FetchError(message=f"Local source {local_path} is not a directory", url=str(local_path))

    try:
        shutil.copytree(
            local_path,
            output_path,
            symlinks=False,
            ignore=_ignore_vcs,
            ignore_dangling_symlinks=True,
            dirs_exist_ok=True,
        )
    except (shutil.Error, OSError) as e:
        raise FetchError(message=f"Failed to copy local source {local_path}: {e}", url=str(local_path)) from e


def fetch_source(
    source: SourceLocation,
    build_path: Path,
    session: requests.Session | None = None,
    timeout: float | None = None,
) -> Path:
    """Materialize the source tree for ``source`` under ``build_path``.

    Returns:
        ``build_path``, now holding the source tree.
    """
    build_path.mkdir(parents=True, exist_ok=True)

    if source.use_local:
        logger.info("Copying local source %s to %s", source.local_path, build_path)
        copy_local_source(source.local_path, build_path)
        return build_path

    archive_path = build_path / source.archive_format.filename
    fetcher = ArchiveFetcher(session=session, timeout=timeout)
    try:
        fetcher.download(source, archive_path)
    finally:
        if session is None:
            fetcher.session.close()

    extract_archive(archive_path, build_path, source.archive_format)
    return build_path
