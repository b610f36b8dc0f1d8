"""Activity log engine - append records and query daily log files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from .config import ActivityLogConfig
from .errors import (
    ActivityLogError,
    NotFoundError,
    ParseError,
    StoreIOError,
    ValidationError,
)
from .files import scan_log_files
from .models import ActivityRecord, ActivityType, FileInfo, LogLevel, create_record, format_timestamp
from .query import Page, SearchFilters, check_page_args, paginate, run_query
from .store import append_record

__all__ = [
    "ActivityLogEngine",
    "ActivityLogError",
    "AppendResult",
    "NotFoundError",
    "ParseError",
    "StoreIOError",
    "ValidationError",
]


@dataclass
class AppendResult:
    """Outcome of a successful append."""
    record: ActivityRecord
    file_path: Path

    def to_dict(self) -> dict:
        return {
            "id": self.record.record_id,
            "timestamp": format_timestamp(self.record.timestamp),
            "filePath": str(self.file_path),
        }


class ActivityLogEngine:
    """Entry point for writing and querying activity logs.

    Holds only configuration; every call re-reads the filesystem.
    """

    def __init__(self, config: Optional[ActivityLogConfig] = None):
        self.config = config or ActivityLogConfig()

    def _resolve_dir(self, directory: Union[str, Path, None]) -> Path:
        """Pick the directory for a call and require it to be absolute."""
        if directory is None or (isinstance(directory, str) and not directory.strip()):
            if self.config.logs_dir is None:
                raise ValidationError("A logs directory is required", field="logsDir")
            directory = self.config.logs_dir
        path = Path(directory)
        if not path.is_absolute():
            raise ValidationError(f"Log directory must be an absolute path: {directory}", field="logsDir")
        return path

    def _require_existing_dir(self, directory: Union[str, Path, None]) -> Path:
        root = self._resolve_dir(directory)
        if not root.is_dir():
            raise NotFoundError(f"Directory not found: {root}")
        return root

    def _limit(self, limit: Optional[int], default: int) -> int:
        limit = default if limit is None else limit
        if limit > self.config.max_limit:
            raise ValidationError(
                f"limit must be <= {self.config.max_limit}, got {limit}", field="limit"
            )
        return limit

    # ========== Write ==========

    def log_activity(
        self,
        logs_dir: Union[str, Path, None],
        type: Union[ActivityType, str],
        summary: str,
        intention: str,
        context: str,
        level: Union[LogLevel, str, None] = None,
        details: Optional[dict[str, Any]] = None,
        parent_id: Optional[str] = None,
        sequence: Optional[int] = None,
        related_ids: Optional[Sequence[str]] = None,
    ) -> AppendResult:
        """Create a record and append it to today's log file in logs_dir.

        The directory (and any missing parents) is created if needed.

        Raises:
            ValidationError: If logs_dir is relative or a field is invalid.
            StoreIOError: If the directory or file cannot be written.
        """
        target = self._resolve_dir(logs_dir)
        record = create_record(
            type=type,
            summary=summary,
            intention=intention,
            context=context,
            level=level,
            details=details,
            parent_id=parent_id,
            sequence=sequence,
            related_ids=related_ids,
        )
        path = append_record(record, target, self.config)
        return AppendResult(record=record, file_path=path)

    # ========== Read ==========

    def get_log_files(
        self,
        logs_dir: Union[str, Path, None],
        limit: Optional[int] = None,
        offset: int = 0,
        prefix: Optional[str] = None,
        extension: Optional[str] = None,
        max_depth: Optional[int] = None,
    ) -> Page[FileInfo]:
        """List log files under logs_dir, newest first by name.

        Raises:
            ValidationError: If logs_dir is relative or paging is invalid.
            NotFoundError: If logs_dir does not exist.
        """
        root = self._require_existing_dir(logs_dir)
        limit = self._limit(limit, self.config.default_list_limit)
        check_page_args(limit, offset)

        files = scan_log_files(
            root,
            prefix=self.config.file_prefix if prefix is None else prefix,
            extension=self.config.file_extension if extension is None else extension,
            max_depth=self.config.max_depth if max_depth is None else max_depth,
        )
        files.sort(key=lambda f: (f.name, str(f.path)), reverse=True)
        return paginate(files, limit, offset)

    def search_logs(
        self,
        logs_dir: Union[str, Path, None],
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        prefix: Optional[str] = None,
        extension: Optional[str] = None,
        max_depth: Optional[int] = None,
    ) -> Page[ActivityRecord]:
        """Search records under logs_dir, newest first.

        Unreadable or corrupt files are skipped.

        Raises:
            ValidationError: If logs_dir is relative, paging is invalid or
                a date bound cannot be parsed.
            NotFoundError: If logs_dir does not exist.
        """
        root = self._require_existing_dir(logs_dir)
        limit = self._limit(limit, self.config.default_search_limit)
        filters = filters or SearchFilters()
        prefix = self.config.file_prefix if prefix is None else prefix
        extension = self.config.file_extension if extension is None else extension

        files = scan_log_files(
            root,
            prefix=prefix,
            extension=extension,
            max_depth=self.config.max_depth if max_depth is None else max_depth,
        )
        return run_query(
            files,
            filters,
            limit=limit,
            offset=offset,
            prefix=prefix,
            extension=extension,
            workers=self.config.read_workers,
        )
