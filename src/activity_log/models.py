"""Data models for activity records and log file metadata."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from .errors import ValidationError


class ActivityType(Enum):
    """Kind of activity being recorded."""
    COMMAND_EXECUTION = "command_execution"
    CODE_GENERATION = "code_generation"
    FILE_OPERATION = "file_operation"
    ERROR_ENCOUNTERED = "error_encountered"
    DECISION_MADE = "decision_made"
    CONVERSATION = "conversation"


class LogLevel(Enum):
    """Severity of a record."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def generate_record_id() -> str:
    """Generate a random (version 4) UUID string."""
    return str(uuid.uuid4())


def format_timestamp(dt: datetime) -> str:
    """Format datetime as UTC ISO 8601 with milliseconds and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(s: str) -> datetime:
    """Parse ISO 8601 timestamp string into an aware UTC datetime.

    Accepts a trailing ``Z``; naive values are taken to be UTC.
    """
    text = s.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class ActivityRecord:
    """A single immutable activity log record.

    Optional fields are ``None`` when absent and are left out of the
    persisted form entirely.
    """
    record_id: str
    timestamp: datetime
    type: ActivityType
    level: LogLevel
    summary: str
    intention: str
    context: str

    details: Optional[dict[str, Any]] = None
    parent_id: Optional[str] = None
    sequence: Optional[int] = None
    related_ids: Optional[tuple[str, ...]] = None

    def to_dict(self) -> dict:
        """Convert record to its persisted JSON form."""
        data: dict[str, Any] = {
            "id": self.record_id,
            "timestamp": format_timestamp(self.timestamp),
            "type": self.type.value,
            "level": self.level.value,
            "summary": self.summary,
            "intention": self.intention,
            "context": self.context,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        if self.sequence is not None:
            data["sequence"] = self.sequence
        if self.related_ids is not None:
            data["relatedIds"] = list(self.related_ids)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ActivityRecord":
        """Build a record from its persisted JSON form.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If a value is out of range (unknown type, bad timestamp).
            TypeError: If a value has the wrong shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Record must be an object, got {type(data).__name__}")

        sequence = data.get("sequence")
        if sequence is not None and (isinstance(sequence, bool) or not isinstance(sequence, int)):
            raise TypeError(f"sequence must be an integer, got {sequence!r}")

        related = data.get("relatedIds")
        if related is not None:
            if not isinstance(related, list) or not all(isinstance(r, str) for r in related):
                raise TypeError("relatedIds must be a list of strings")
            related = tuple(related)

        details = data.get("details")
        if details is not None and not isinstance(details, dict):
            raise TypeError("details must be an object")

        record_id = data["id"]
        if not isinstance(record_id, str):
            raise TypeError(f"id must be a string, got {record_id!r}")
        timestamp = data["timestamp"]
        if not isinstance(timestamp, str):
            raise TypeError(f"timestamp must be a string, got {timestamp!r}")
        text = {}
        for key in ("summary", "intention", "context"):
            value = data.get(key, "")
            if not isinstance(value, str):
                raise TypeError(f"{key} must be a string, got {value!r}")
            text[key] = value
        parent_id = data.get("parentId")
        if parent_id is not None and not isinstance(parent_id, str):
            raise TypeError(f"parentId must be a string, got {parent_id!r}")

        return cls(
            record_id=record_id,
            timestamp=parse_timestamp(timestamp),
            type=ActivityType(data["type"]),
            level=LogLevel(data.get("level", LogLevel.INFO.value)),
            **text,
            details=details,
            parent_id=parent_id,
            sequence=sequence,
            related_ids=related,
        )


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string", field=field_name)
    return value


def create_record(
    type: Union[ActivityType, str],
    summary: str,
    intention: str,
    context: str,
    level: Union[LogLevel, str, None] = None,
    details: Optional[dict[str, Any]] = None,
    parent_id: Optional[str] = None,
    sequence: Optional[int] = None,
    related_ids: Optional[Sequence[str]] = None,
) -> ActivityRecord:
    """Create a new record with a fresh id and the current UTC timestamp.

    Raises:
        ValidationError: If a required field is blank or an optional
            field is out of range.
    """
    try:
        activity_type = ActivityType(type)
    except ValueError:
        raise ValidationError(f"Invalid activity type: {type!r}", field="type")
    try:
        log_level = LogLevel(level) if level is not None else LogLevel.INFO
    except ValueError:
        raise ValidationError(f"Invalid log level: {level!r}", field="level")

    if sequence is not None and (isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 0):
        raise ValidationError("sequence must be a non-negative integer", field="sequence")
    if details is not None and not isinstance(details, dict):
        raise ValidationError("details must be an object", field="details")
    if related_ids is not None:
        if isinstance(related_ids, str) or not all(isinstance(r, str) for r in related_ids):
            raise ValidationError("relatedIds must be a list of strings", field="relatedIds")

    return ActivityRecord(
        record_id=generate_record_id(),
        timestamp=utc_now(),
        type=activity_type,
        level=log_level,
        summary=_require_text(summary, "summary"),
        intention=_require_text(intention, "intention"),
        context=_require_text(context, "context"),
        details=dict(details) if details is not None else None,
        parent_id=parent_id,
        sequence=sequence,
        related_ids=tuple(related_ids) if related_ids is not None else None,
    )


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a discovered log file."""
    path: Path
    name: str
    size: int
    modified: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "modifiedTime": format_timestamp(self.modified),
        }
