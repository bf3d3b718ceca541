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

"""Configuration utilities for Extbuild.

Two layers feed a build: a YAML config file holding site defaults and the
deployment environment (optionally seeded from a ``.env`` file) holding the
per-build parameters.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {
        "runs_root": "~/.cache/extbuild/runs",
        "local_source": "/src",
    },
    "defaults": {
        "builder": "legacy",
        "flat_layout": False,
        "build_flags": [],
        "build_timeout": None,
        "output_limit": 1024 * 1024,
    },
    "fetch": {
        "api_host": "api.github.com",
        "archive_format": "zip",
        "timeout": None,
    },
    "deploy": {
        "copy_policy": "abort",
        "description": "",
    },
}

# Environment variable -> settings key
ENV_KEYS: dict[str, str] = {
    "GITHUB_ORGANIZATION": "organization",
    "GITHUB_REPOSITORY": "repository",
    "GITHUB_REF": "ref",
    "GITHUB_AUTH_TOKEN": "github_token",
    "BUILD_PATH": "build_path",
    "DEPLOY_PATH": "deploy_path",
    "FOSWIKI_LIBS": "lib_path",
    "RELEASE_STRING": "release",
    "NPM_AUTH_TOKEN": "registry_token",
    "USE_LOCAL_SOURCE": "use_local_source",
    "LOCAL_SOURCE_PATH": "local_source_path",
    "EXTBUILD_BUILDER": "builder",
    "EXTBUILD_FLAT_LAYOUT": "flat_layout",
    "EXTBUILD_BUILD_FLAGS": "build_flags",
}

TRUTHY = {"1", "true", "yes", "on"}


def get_config_path() -> Path:
    """Return the path to the config file."""
    return Path.home() / ".config" / "extbuild" / "config.yaml"


def ensure_config_exists() -> None:
    """Create the config file with defaults if it does not exist."""
    cfg_path = get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if not cfg_path.exists():
        cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG))


def load_config() -> dict[str, Any]:
    """Load configuration from disk and merge with defaults.

    The returned dictionary is a shallow per-section merge of DEFAULT_CONFIG
    and values stored in the on-disk config file.
    """
    ensure_config_exists()
    cfg_path = get_config_path()
    try:
        raw = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError:
        raw = {}

    merged: dict[str, Any] = {}
    for key, val in DEFAULT_CONFIG.items():
        if key in raw and isinstance(raw[key], dict):
            merged[key] = {**val, **raw[key]}
        elif isinstance(val, dict):
            merged[key] = raw.get(key, dict(val))
        else:
            merged[key] = raw.get(key, val)

    for pkey, pval in merged.get("paths", {}).items():
        merged["paths"][pkey] = str(Path(str(pval)).expanduser())

    return merged


def write_config(data: dict[str, Any]) -> None:
    """Write the provided data as YAML to the config path."""
    cfg_path = get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(yaml.safe_dump(data))


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY


def load_settings(
    environ: Mapping[str, str] | None = None,
    env_file: Path | None = None,
) -> dict[str, str]:
    """Read deployment parameters from the environment.

    When ``environ`` is None the process environment is used, after loading
    ``env_file`` (or a ``.env`` in the working directory) without overriding
    variables that are already set. Empty values are dropped.
    """
    if environ is None:
        load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True), override=False)
        environ = os.environ

    settings: dict[str, str] = {}
    for env_key, setting in ENV_KEYS.items():
        value = environ.get(env_key, "")
        if value:
            settings[setting] = value
    return settings


if __name__ == "__main__":
    cfg = load_config()
    print(json.dumps(cfg, indent=2))
