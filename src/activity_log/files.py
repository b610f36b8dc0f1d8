"""Log file naming and bounded-depth discovery."""

from __future__ import annotations

import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .errors import NotFoundError, StoreIOError, ValidationError
from .models import FileInfo

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "roo-activity-"
DEFAULT_EXTENSION = ".json"
DEFAULT_MAX_DEPTH = 3


def log_file_name(
    day: Union[datetime, date],
    prefix: str = DEFAULT_PREFIX,
    extension: str = DEFAULT_EXTENSION,
) -> str:
    """Get the file name holding records for a given UTC day.

    Aware datetimes are converted to UTC first; naive ones are taken as UTC.
    """
    if isinstance(day, datetime):
        if day.tzinfo is not None:
            day = day.astimezone(timezone.utc)
        day = day.date()
    return f"{prefix}{day.strftime('%Y-%m-%d')}{extension}"


def file_name_date(name: str, prefix: str = DEFAULT_PREFIX, extension: str = DEFAULT_EXTENSION) -> Optional[date]:
    """Extract the date embedded in a log file name, or None if there isn't one."""
    if not name.startswith(prefix) or not name.endswith(extension):
        return None
    middle = name[len(prefix):len(name) - len(extension)]
    try:
        return datetime.strptime(middle, "%Y-%m-%d").date()
    except ValueError:
        return None


def _matches(name: str, prefix: str, extension: str) -> bool:
    return name.startswith(prefix) and name.endswith(extension)


def _file_info(entry: os.DirEntry) -> Optional[FileInfo]:
    try:
        stat = entry.stat()
    except OSError as e:
        logger.warning("Skipping %s: cannot stat (%s)", entry.path, e)
        return None
    return FileInfo(
        path=Path(entry.path),
        name=entry.name,
        size=stat.st_size,
        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def _collect(
    entries: list[os.DirEntry],
    prefix: str,
    extension: str,
    max_depth: int,
    depth: int,
) -> list[FileInfo]:
    """Gather matching files from one listing and recurse below it."""
    found = []
    for entry in entries:
        try:
            is_dir = entry.is_dir()
            is_file = entry.is_file()
        except OSError as e:
            logger.warning("Skipping %s: %s", entry.path, e)
            continue

        if is_dir:
            if depth < max_depth:
                found.extend(_scan_branch(Path(entry.path), prefix, extension, max_depth, depth + 1))
        elif is_file and _matches(entry.name, prefix, extension):
            info = _file_info(entry)
            if info is not None:
                found.append(info)
    return found


def _scan_branch(directory: Path, prefix: str, extension: str, max_depth: int, depth: int) -> list[FileInfo]:
    """Scan a subdirectory. Failures drop this branch and are only logged."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        logger.warning("Skipping unreadable directory %s: %s", directory, e)
        return []
    return _collect(entries, prefix, extension, max_depth, depth)


def scan_log_files(
    root: Path,
    prefix: str = DEFAULT_PREFIX,
    extension: str = DEFAULT_EXTENSION,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[FileInfo]:
    """Find log files under root, descending at most max_depth levels.

    ``max_depth=0`` looks at the root's direct children only. The order of
    the result is unspecified.

    Raises:
        ValidationError: If max_depth is negative.
        NotFoundError: If root does not exist or is not a directory.
        StoreIOError: If root exists but cannot be listed.
    """
    if max_depth < 0:
        raise ValidationError(f"max_depth must be >= 0, got {max_depth}", field="maxDepth")

    root = Path(root)
    try:
        with os.scandir(root) as it:
            entries = list(it)
    except (FileNotFoundError, NotADirectoryError) as e:
        raise NotFoundError(f"Directory not found: {root}") from e
    except OSError as e:
        raise StoreIOError(f"Cannot read directory {root}: {e}", path=root) from e

    files = _collect(entries, prefix, extension, max_depth, 0)
    logger.debug("Found %d log file(s) under %s (max_depth=%d)", len(files), root, max_depth)
    return files
