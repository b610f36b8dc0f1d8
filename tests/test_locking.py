"""Tests for file locking and atomic writes."""

import portalocker
import pytest

from activity_log.locking import atomic_write_text, file_lock, lock_path_for


def test_lock_path_is_sibling(tmp_path):
    assert lock_path_for(tmp_path / "log.json") == tmp_path / "log.json.lock"


def test_file_lock_creates_lock_file(tmp_path):
    target = tmp_path / "sub" / "log.json"
    with file_lock(target):
        assert lock_path_for(target).exists()


def test_second_lock_times_out(tmp_path):
    target = tmp_path / "log.json"
    with file_lock(target):
        with pytest.raises(portalocker.LockException):
            with file_lock(target, timeout=0.2):
                pass


def test_atomic_write_replaces_content(tmp_path):
    target = tmp_path / "log.json"
    target.write_text("old", encoding="utf-8")

    atomic_write_text(target, "new")

    assert target.read_text(encoding="utf-8") == "new"
    assert [p.name for p in tmp_path.iterdir()] == ["log.json"]


def test_atomic_write_cleans_up_on_failure(tmp_path):
    target = tmp_path / "missing-dir" / "log.json"
    with pytest.raises(OSError):
        atomic_write_text(target, "data")
    assert not (tmp_path / "missing-dir").exists()
