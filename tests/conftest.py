"""Shared pytest fixtures for activity-log tests."""

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from activity_log.config import ActivityLogConfig
from activity_log.engine import ActivityLogEngine
from activity_log.models import ActivityRecord, ActivityType, LogLevel


@pytest.fixture
def logs_dir():
    """Create a temporary log directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def config():
    """Create a test configuration."""
    return ActivityLogConfig()


@pytest.fixture
def engine(config):
    """Create a test engine."""
    return ActivityLogEngine(config)


def make_record(timestamp, record_id=None, **fields):
    """Build a record with a fixed timestamp (ISO string or datetime)."""
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    defaults = {
        "type": ActivityType.COMMAND_EXECUTION,
        "level": LogLevel.INFO,
        "summary": "ran a command",
        "intention": "check the build",
        "context": "local checkout",
    }
    defaults.update(fields)
    return ActivityRecord(
        record_id=record_id or f"rec-{timestamp.isoformat()}",
        timestamp=timestamp,
        **defaults,
    )


def write_log(directory, day, records, prefix="roo-activity-", extension=".json"):
    """Write records as a day's log file, returning its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{prefix}{day}{extension}"
    path.write_text(json.dumps([r.to_dict() for r in records], indent=2), encoding="utf-8")
    return path
