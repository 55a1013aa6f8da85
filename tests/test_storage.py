"""Tests for imagetrace.storage: ~/.imagetrace/ state and search log."""

import json
from datetime import datetime, timezone

import pytest

from imagetrace import storage


@pytest.fixture
def tmp_state_dir(tmp_path, monkeypatch):
    """Override IMAGETRACE_DIR to use a temp directory."""
    monkeypatch.setattr(storage, "IMAGETRACE_DIR", tmp_path)
    return tmp_path


class TestSessionState:
    def test_empty_when_missing(self, tmp_state_dir):
        state = storage.load_state()
        assert state.reviewed == set()
        assert state.saved == set()

    def test_roundtrip(self, tmp_state_dir):
        storage.save_state(storage.SessionState(reviewed={"b", "a"}, saved={"c"}))
        state = storage.load_state()
        assert state.is_reviewed("a")
        assert state.is_saved("c")
        assert not state.is_saved("a")

    def test_saved_sorted(self, tmp_state_dir):
        storage.save_state(storage.SessionState(reviewed={"b", "a"}))
        data = json.loads(storage.state_path().read_text())
        assert data["reviewed"] == ["a", "b"]

    def test_no_tmp_left(self, tmp_state_dir):
        storage.save_state(storage.SessionState(saved={"x"}))
        assert not list(tmp_state_dir.glob("*.tmp"))

    def test_corrupted_file(self, tmp_state_dir):
        storage.state_path().write_text("{not json")
        assert storage.load_state().reviewed == set()

    def test_wrong_shape(self, tmp_state_dir):
        storage.state_path().write_text("[1, 2]")
        assert storage.load_state().saved == set()


class TestSearchStats:
    def test_empty(self, tmp_state_dir):
        stats = storage.get_search_stats()
        assert stats["total_searches"] == 0
        assert stats["average_results"] == 0.0
        assert stats["searches_by_type"] == {}

    def test_record_and_summarize(self, tmp_state_dir):
        when = datetime(2024, 6, 1, tzinfo=timezone.utc)
        storage.record_search("https://example.com/cat.jpg", 10, when)
        storage.record_search("photo.png", 0, when)
        storage.record_search("http://example.com/dog.jpg", 5, when)

        stats = storage.get_search_stats()
        assert stats["total_searches"] == 3
        assert stats["searches_with_results"] == 2
        assert stats["average_results"] == 5.0
        assert stats["searches_by_type"] == {"url": 2, "file": 1}

    def test_entry_format(self, tmp_state_dir):
        storage.record_search("photo.png", 3, datetime(2024, 6, 1, tzinfo=timezone.utc))
        entries = json.loads(storage.stats_path().read_text())
        assert entries == [
            {"type": "file", "result_count": 3, "created_at": "2024-06-01T00:00:00+00:00"}
        ]

    def test_corrupted_log(self, tmp_state_dir):
        storage.stats_path().write_text("garbage")
        assert storage.get_search_stats()["total_searches"] == 0
        storage.record_search("photo.png", 1)
        assert storage.get_search_stats()["total_searches"] == 1

    def test_record_failure_is_logged(self, tmp_state_dir, monkeypatch, caplog):
        def boom(path, data):
            raise OSError("disk full")

        monkeypatch.setattr(storage, "_atomic_write", boom)
        storage.record_search("photo.png", 1)
        assert "disk full" in caplog.text
