"""Daily log file reader and append-only writer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import portalocker

from .config import ActivityLogConfig
from .errors import ParseError, StoreIOError, ValidationError
from .files import log_file_name
from .locking import atomic_write_text, file_lock
from .models import ActivityRecord

logger = logging.getLogger(__name__)


def read_array(path: Path) -> list[Any]:
    """Load the raw JSON array stored in one log file.

    A missing file or one holding only whitespace is an empty log.

    Raises:
        ParseError: If the content is not a JSON array.
        StoreIOError: If the file exists but cannot be read.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as e:
        raise StoreIOError(f"Cannot read log file {path}: {e}", path=path) from e

    if not content.strip():
        return []

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {path}: {e}", path=path) from e

    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array in {path}, got {type(data).__name__}", path=path)
    return data


def read_records(path: Path) -> list[ActivityRecord]:
    """Load every record stored in one log file.

    Elements that are not valid records are logged and skipped.

    Raises:
        ParseError: If the content is not a JSON array.
        StoreIOError: If the file exists but cannot be read.
    """
    records = []
    for position, item in enumerate(read_array(path)):
        try:
            records.append(ActivityRecord.from_dict(item))
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed record #%d in %s: %r", position, path, e)
    return records


def _load_for_append(path: Path) -> list[Any]:
    """Read the current day's entries, starting fresh if they can't be loaded."""
    try:
        return read_array(path)
    except (ParseError, StoreIOError) as e:
        logger.warning("Could not load %s, starting a new log: %s", path, e)
        return []


def _rewrite(path: Path, record: ActivityRecord) -> None:
    entries = _load_for_append(path)
    entries.append(record.to_dict())
    atomic_write_text(path, json.dumps(entries, indent=2, ensure_ascii=False))


def append_record(
    record: ActivityRecord,
    target_dir: Path,
    config: Optional[ActivityLogConfig] = None,
) -> Path:
    """Append one record to the log file for the record's UTC day.

    The whole file is read, extended and written back. With
    ``config.lock_writes`` the cycle runs under a per-file lock so
    concurrent writers on one host do not lose each other's records.

    Returns:
        Path of the file written.

    Raises:
        ValidationError: If target_dir is not absolute.
        StoreIOError: If the directory cannot be created, the lock
            cannot be acquired, or the final write fails.
    """
    config = config or ActivityLogConfig()
    target_dir = Path(target_dir)
    if not target_dir.is_absolute():
        raise ValidationError(f"Log directory must be an absolute path: {target_dir}", field="logsDir")

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StoreIOError(f"Cannot create log directory {target_dir}: {e}", path=target_dir) from e

    path = target_dir / log_file_name(record.timestamp, config.file_prefix, config.file_extension)

    try:
        if config.lock_writes:
            with file_lock(path, timeout=config.lock_timeout):
                _rewrite(path, record)
        else:
            _rewrite(path, record)
    except portalocker.LockException as e:
        raise StoreIOError(f"Timed out waiting for lock on {path}", path=path) from e
    except OSError as e:
        raise StoreIOError(f"Cannot write log file {path}: {e}", path=path) from e

    logger.debug("Appended record %s to %s", record.record_id, path)
    return path
