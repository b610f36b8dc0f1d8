"""Tests for the log file reader and writer."""

import json
import logging
import threading
from pathlib import Path

import pytest

from activity_log.config import ActivityLogConfig
from activity_log.errors import ParseError, StoreIOError, ValidationError
from activity_log.files import log_file_name
from activity_log.models import create_record
from activity_log.store import append_record, read_array, read_records

from conftest import make_record, write_log


def new_record(summary="did a thing", **kwargs):
    return create_record(
        type="file_operation",
        summary=summary,
        intention="keep notes",
        context="tests",
        **kwargs,
    )


class TestReadRecords:
    """Tests for read_records."""

    def test_missing_file_is_empty(self, logs_dir):
        assert read_records(logs_dir / "roo-activity-2024-01-15.json") == []

    @pytest.mark.parametrize("content", ["", "   \n\t"])
    def test_blank_file_is_empty(self, logs_dir, content):
        path = logs_dir / "roo-activity-2024-01-15.json"
        path.write_text(content, encoding="utf-8")
        assert read_records(path) == []

    def test_invalid_json_is_parse_error(self, logs_dir):
        path = logs_dir / "roo-activity-2024-01-15.json"
        path.write_text("[{not json", encoding="utf-8")
        with pytest.raises(ParseError) as exc_info:
            read_records(path)
        assert exc_info.value.path == path

    def test_non_array_is_parse_error(self, logs_dir):
        path = logs_dir / "roo-activity-2024-01-15.json"
        path.write_text('{"id": "x"}', encoding="utf-8")
        with pytest.raises(ParseError):
            read_records(path)

    def test_malformed_element_is_skipped(self, logs_dir, caplog):
        good = make_record("2024-01-15T10:00:00Z", record_id="good")
        path = logs_dir / "roo-activity-2024-01-15.json"
        entries = [
            {"summary": "no id"},
            "not an object",
            {"id": "t", "timestamp": 123, "type": "conversation"},
            good.to_dict(),
        ]
        path.write_text(json.dumps(entries), encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="activity_log.store"):
            records = read_records(path)

        assert [r.record_id for r in records] == ["good"]
        assert "Skipping malformed record #0" in caplog.text

    def test_directory_is_io_error(self, logs_dir):
        path = logs_dir / "roo-activity-2024-01-15.json"
        path.mkdir()
        with pytest.raises(StoreIOError):
            read_records(path)

    def test_reads_records_in_file_order(self, logs_dir):
        first = make_record("2024-01-15T09:00:00Z", record_id="a")
        second = make_record("2024-01-15T08:00:00Z", record_id="b")
        path = write_log(logs_dir, "2024-01-15", [first, second])

        assert [r.record_id for r in read_records(path)] == ["a", "b"]


class TestAppendRecord:
    """Tests for append_record."""

    def test_relative_dir_rejected(self):
        with pytest.raises(ValidationError):
            append_record(new_record(), Path("relative/logs"))

    def test_creates_directories_and_file(self, logs_dir):
        target = logs_dir / "nested" / "deeper"
        record = new_record()

        path = append_record(record, target)

        assert path == target / log_file_name(record.timestamp)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == [record.to_dict()]

    def test_file_is_pretty_printed(self, logs_dir):
        path = append_record(new_record(), logs_dir)
        assert path.read_text(encoding="utf-8").startswith("[\n  {")

    def test_non_ascii_is_written_as_utf8(self, logs_dir):
        path = append_record(new_record(summary="ログを保存"), logs_dir)
        assert "ログを保存" in path.read_text(encoding="utf-8")

    def test_appends_in_order(self, logs_dir):
        records = [new_record(summary=f"step {i}") for i in range(5)]
        for record in records:
            path = append_record(record, logs_dir)

        stored = read_records(path)
        assert [r.record_id for r in stored] == [r.record_id for r in records]

    def test_custom_naming(self, logs_dir):
        config = ActivityLogConfig(file_prefix="app-", file_extension=".log")
        path = append_record(new_record(), logs_dir, config)
        assert path.name.startswith("app-")
        assert path.suffix == ".log"

    def test_corrupt_file_starts_fresh(self, logs_dir, caplog):
        record = new_record()
        path = logs_dir / log_file_name(record.timestamp)
        path.write_text("this is not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="activity_log.store"):
            append_record(record, logs_dir)

        assert [r.record_id for r in read_records(path)] == [record.record_id]
        assert "starting a new log" in caplog.text

    def test_preserves_unknown_keys_in_existing_entries(self, logs_dir):
        record = new_record()
        path = logs_dir / log_file_name(record.timestamp)
        existing = make_record("2024-01-15T09:00:00Z", record_id="old").to_dict()
        existing["extra"] = "kept"
        path.write_text(json.dumps([existing]), encoding="utf-8")

        append_record(record, logs_dir)

        data = read_array(path)
        assert data[0]["extra"] == "kept"
        assert data[1]["id"] == record.record_id

    def test_no_temp_files_left_behind(self, logs_dir):
        append_record(new_record(), logs_dir)
        assert not list(logs_dir.glob("*.tmp"))

    def test_unwritable_target_is_io_error(self, logs_dir):
        blocker = logs_dir / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        with pytest.raises(StoreIOError):
            append_record(new_record(), blocker / "logs")

    def test_unlocked_mode_writes_without_lock_file(self, logs_dir):
        config = ActivityLogConfig(lock_writes=False)
        path = append_record(new_record(), logs_dir, config)
        assert path.exists()
        assert not path.with_name(path.name + ".lock").exists()

    def test_concurrent_appends_are_not_lost(self, logs_dir):
        records = [new_record(summary=f"thread {i}") for i in range(20)]
        errors = []

        def worker(record):
            try:
                append_record(record, logs_dir)
            except Exception as e:  # pragma: no cover - surfaced by the assert below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(r,)) for r in records]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        path = logs_dir / log_file_name(records[0].timestamp)
        stored = {r.record_id for r in read_records(path)}
        assert stored == {r.record_id for r in records}
