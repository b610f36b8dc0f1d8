"""Record filtering, ordering and pagination."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

from .errors import ParseError, StoreIOError, ValidationError
from .files import file_name_date
from .models import ActivityRecord, ActivityType, FileInfo, LogLevel, parse_timestamp
from .store import read_records

logger = logging.getLogger(__name__)

T = TypeVar("T")

END_OF_DAY = time(23, 59, 59, 999000)


def details_text(record: ActivityRecord) -> str:
    """Serialize details for text search (``{}`` when absent)."""
    return json.dumps(record.details or {}, separators=(",", ":"), ensure_ascii=False, default=str)


def _all_text(record: ActivityRecord) -> str:
    return " ".join([record.summary, details_text(record), record.intention, record.context])


class SearchField(Enum):
    """Record field that text search looks at."""
    SUMMARY = "summary"
    INTENTION = "intention"
    CONTEXT = "context"
    DETAILS = "details"
    ALL = "all"

    def text(self, record: ActivityRecord) -> str:
        """Get the searchable text of this field for a record."""
        return _FIELD_TEXT[self](record)


_FIELD_TEXT: dict[SearchField, Callable[[ActivityRecord], str]] = {
    SearchField.SUMMARY: lambda r: r.summary or "",
    SearchField.INTENTION: lambda r: r.intention or "",
    SearchField.CONTEXT: lambda r: r.context or "",
    SearchField.DETAILS: details_text,
    SearchField.ALL: _all_text,
}


@dataclass(frozen=True)
class SearchFilters:
    """Optional predicates for a search. Unset filters match everything."""
    type: Optional[ActivityType] = None
    level: Optional[LogLevel] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    search_text: Optional[str] = None
    search_terms: tuple[str, ...] = ()
    search_fields: tuple[SearchField, ...] = (SearchField.ALL,)
    case_sensitive: bool = False
    parent_id: Optional[str] = None
    sequence_from: Optional[int] = None
    sequence_to: Optional[int] = None
    related_id: Optional[str] = None
    related_ids: tuple[str, ...] = ()

    def terms(self) -> list[str]:
        """All text search terms (search_text first); matched with OR."""
        terms = [self.search_text] if self.search_text else []
        terms.extend(t for t in self.search_terms if t)
        return terms


@dataclass(frozen=True)
class DateBounds:
    """Inclusive timestamp window resolved from start/end date filters."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, ts: datetime) -> bool:
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts > self.end:
            return False
        return True

    def may_contain_day(self, day: date) -> bool:
        """Whether a UTC calendar day overlaps the window (for file pruning)."""
        if self.start is not None and day < self.start.date():
            return False
        if self.end is not None and day > self.end.date():
            return False
        return True


def parse_date_bound(value: str, end: bool = False) -> datetime:
    """Resolve a date filter bound to an exact UTC instant.

    A bare ``YYYY-MM-DD`` expands to the start (or, for an end bound, the
    last millisecond) of that UTC day; anything containing ``T`` is an
    exact timestamp.

    Raises:
        ValidationError: If the value cannot be parsed.
    """
    field_name = "endDate" if end else "startDate"
    try:
        if "T" in value:
            return parse_timestamp(value)
        day = datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name) from e
    return datetime.combine(day, END_OF_DAY if end else time.min, tzinfo=timezone.utc)


def date_bounds(filters: SearchFilters) -> DateBounds:
    """Resolve the date filters of a search."""
    return DateBounds(
        start=parse_date_bound(filters.start_date) if filters.start_date else None,
        end=parse_date_bound(filters.end_date, end=True) if filters.end_date else None,
    )


# ========== Predicates ==========

def matches_type(record: ActivityRecord, activity_type: Optional[ActivityType]) -> bool:
    return activity_type is None or record.type == activity_type


def matches_level(record: ActivityRecord, level: Optional[LogLevel]) -> bool:
    return level is None or record.level == level


def matches_date_range(record: ActivityRecord, bounds: DateBounds) -> bool:
    return bounds.contains(record.timestamp)


def matches_text(
    record: ActivityRecord,
    terms: Sequence[str],
    fields: Sequence[SearchField] = (SearchField.ALL,),
    case_sensitive: bool = False,
) -> bool:
    """True if any term is a substring of the selected fields' joined text."""
    if not terms:
        return True
    text = " ".join(f.text(record) for f in (fields or (SearchField.ALL,)))
    if not case_sensitive:
        text = text.lower()
        terms = [t.lower() for t in terms]
    return any(term in text for term in terms)


def matches_parent(record: ActivityRecord, parent_id: Optional[str]) -> bool:
    return not parent_id or record.parent_id == parent_id


def matches_sequence_range(
    record: ActivityRecord,
    sequence_from: Optional[int],
    sequence_to: Optional[int],
) -> bool:
    """Records without a sequence only pass when no bound is given."""
    if sequence_from is None and sequence_to is None:
        return True
    if record.sequence is None:
        return False
    if sequence_from is not None and record.sequence < sequence_from:
        return False
    if sequence_to is not None and record.sequence > sequence_to:
        return False
    return True


def matches_related(
    record: ActivityRecord,
    related_id: Optional[str],
    related_ids: Sequence[str] = (),
) -> bool:
    """Membership of related_id and overlap with related_ids, both required when given."""
    if not related_id and not related_ids:
        return True
    if not record.related_ids:
        return False
    if related_id and related_id not in record.related_ids:
        return False
    if related_ids and not any(rid in record.related_ids for rid in related_ids):
        return False
    return True


def apply_filters(records: Iterable[ActivityRecord], filters: SearchFilters) -> list[ActivityRecord]:
    """Keep records matching every filter."""
    bounds = date_bounds(filters)
    terms = filters.terms()
    return [
        r for r in records
        if matches_type(r, filters.type)
        and matches_level(r, filters.level)
        and matches_date_range(r, bounds)
        and matches_text(r, terms, filters.search_fields, filters.case_sensitive)
        and matches_parent(r, filters.parent_id)
        and matches_sequence_range(r, filters.sequence_from, filters.sequence_to)
        and matches_related(r, filters.related_id, filters.related_ids)
    ]


def sort_newest_first(records: Iterable[ActivityRecord]) -> list[ActivityRecord]:
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


# ========== Pagination ==========

@dataclass
class Page(Generic[T]):
    """One page of a larger result."""
    items: list[T]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


def check_page_args(limit: int, offset: int) -> None:
    if limit < 1:
        raise ValidationError(f"limit must be >= 1, got {limit}", field="limit")
    if offset < 0:
        raise ValidationError(f"offset must be >= 0, got {offset}", field="offset")


def paginate(items: Sequence[T], limit: int, offset: int = 0) -> Page[T]:
    """Slice ``[offset, offset + limit)`` out of items.

    Raises:
        ValidationError: If limit < 1 or offset < 0.
    """
    check_page_args(limit, offset)
    return Page(items=list(items[offset:offset + limit]), total=len(items), offset=offset, limit=limit)


# ========== Query ==========

def prune_by_file_date(
    files: Iterable[FileInfo],
    bounds: DateBounds,
    prefix: str,
    extension: str,
) -> list[FileInfo]:
    """Drop files whose name-embedded day lies outside the date window.

    Files whose names carry no date are kept.
    """
    if bounds.start is None and bounds.end is None:
        return list(files)
    kept = []
    for info in files:
        day = file_name_date(info.name, prefix, extension)
        if day is None or bounds.may_contain_day(day):
            kept.append(info)
    return kept


def _read_or_skip(info: FileInfo) -> list[ActivityRecord]:
    try:
        return read_records(info.path)
    except (ParseError, StoreIOError) as e:
        logger.warning("Skipping unreadable log file %s: %s", info.path, e)
        return []


def load_records(files: Sequence[FileInfo], workers: int = 8) -> list[ActivityRecord]:
    """Read files concurrently and concatenate their records in file order.

    Files that fail to read or parse contribute nothing.
    """
    if not files:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(files)))) as pool:
        results = pool.map(_read_or_skip, files)
        return [record for batch in results for record in batch]


def run_query(
    files: Sequence[FileInfo],
    filters: SearchFilters,
    limit: int,
    offset: int = 0,
    prefix: str = "",
    extension: str = "",
    workers: int = 8,
) -> Page[ActivityRecord]:
    """Load candidate files, filter, sort newest first and paginate."""
    check_page_args(limit, offset)
    bounds = date_bounds(filters)
    candidates = prune_by_file_date(files, bounds, prefix, extension)
    records = load_records(candidates, workers=workers)
    matched = sort_newest_first(apply_filters(records, filters))
    logger.debug(
        "Query read %d of %d file(s), %d record(s), %d match(es)",
        len(candidates), len(files), len(records), len(matched),
    )
    return paginate(matched, limit, offset)
