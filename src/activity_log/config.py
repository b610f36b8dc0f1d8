"""Configuration loading for the activity log store.

Settings live in an explicit ``ActivityLogConfig`` value that is passed to
the engine; nothing here is process-wide. A config file is optional:

1. ``activity_log.toml`` / ``activity_log.json``
2. ``.activity_log.toml`` / ``.activity_log.json``
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

# Python 3.11+ has tomllib in stdlib; fall back to tomli for older versions
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python <3.11

from .files import DEFAULT_EXTENSION, DEFAULT_MAX_DEPTH, DEFAULT_PREFIX

LOGS_DIR_ENV = "ACTIVITY_LOG_DIR"


@dataclass
class ActivityLogConfig:
    """Settings shared by the writer and the query engine."""

    # Default root for operations that are not given a directory
    logs_dir: Optional[Path] = None

    # File naming: <prefix><YYYY-MM-DD><extension>
    file_prefix: str = DEFAULT_PREFIX
    file_extension: str = DEFAULT_EXTENSION

    # Discovery and paging
    max_depth: int = DEFAULT_MAX_DEPTH
    default_list_limit: int = 10
    default_search_limit: int = 50
    max_limit: int = 1000
    read_workers: int = 8

    # Writers take a per-file lock around read-modify-write when enabled
    lock_writes: bool = True
    lock_timeout: float = 10.0


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def dict_to_config(data: dict[str, Any], project_root: Path) -> ActivityLogConfig:
    """Convert dictionary to ActivityLogConfig.

    A relative ``storage.logs_dir`` is resolved against project_root.
    """
    config = ActivityLogConfig()

    if "storage" in data:
        storage = data["storage"]
        if "logs_dir" in storage:
            logs_dir = Path(storage["logs_dir"])
            if not logs_dir.is_absolute():
                logs_dir = project_root / logs_dir
            config.logs_dir = logs_dir
        if "prefix" in storage:
            config.file_prefix = storage["prefix"]
        if "extension" in storage:
            config.file_extension = storage["extension"]

    if "search" in data:
        search = data["search"]
        if "max_depth" in search:
            config.max_depth = int(search["max_depth"])
        if "list_limit" in search:
            config.default_list_limit = int(search["list_limit"])
        if "search_limit" in search:
            config.default_search_limit = int(search["search_limit"])
        if "max_limit" in search:
            config.max_limit = int(search["max_limit"])
        if "read_workers" in search:
            config.read_workers = int(search["read_workers"])

    if "locking" in data:
        locking = data["locking"]
        if "enabled" in locking:
            config.lock_writes = bool(locking["enabled"])
        if "timeout" in locking:
            config.lock_timeout = float(locking["timeout"])

    return config


def find_config_file(project_root: Path) -> Optional[Path]:
    """Find configuration file in project root.

    Search order:
    1. activity_log.toml
    2. activity_log.json
    3. .activity_log.toml
    4. .activity_log.json
    """
    candidates = [
        "activity_log.toml",
        "activity_log.json",
        ".activity_log.toml",
        ".activity_log.json",
    ]

    for name in candidates:
        path = project_root / name
        if path.exists():
            return path

    return None


def load_config(project_root: Path, config_path: Optional[Path] = None) -> ActivityLogConfig:
    """Load configuration.

    Args:
        project_root: Directory searched for a config file
        config_path: Optional explicit path to config file

    Returns:
        ActivityLogConfig instance; ``logs_dir`` falls back to the
        ACTIVITY_LOG_DIR environment variable when the file has none.

    Raises:
        ValueError: If the config file type is not supported
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    if config_path is None:
        config = ActivityLogConfig()
    else:
        suffix = config_path.suffix.lower()
        if suffix == ".toml":
            config = dict_to_config(load_toml_config(config_path), project_root)
        elif suffix == ".json":
            config = dict_to_config(load_json_config(config_path), project_root)
        else:
            raise ValueError(f"Unsupported config file type: {suffix}")

    if config.logs_dir is None:
        env_dir = os.environ.get(LOGS_DIR_ENV)
        if env_dir:
            config.logs_dir = Path(env_dir)

    return config
