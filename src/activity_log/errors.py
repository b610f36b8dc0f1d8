"""Exceptions raised by the activity log store and query engine."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ActivityLogError(Exception):
    """Base exception for activity log operations."""
    pass


class ValidationError(ActivityLogError):
    """Raised when caller input is unusable (relative path, blank field, bad bound)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(ActivityLogError):
    """Raised when a directory that must already exist is missing."""
    pass


class ParseError(ActivityLogError):
    """Raised when a log file's content is not a valid record array."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class StoreIOError(ActivityLogError):
    """Raised for filesystem failures (permissions, disk, lock timeouts)."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path
