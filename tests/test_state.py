"""Tests for the JSON progress store."""

import json

from scrapwatch.core.state import JsonProgressStore


def test_missing_file_means_fresh_start(tmp_path):
    store = JsonProgressStore(str(tmp_path / "progress.json"))

    assert store.load() == 0


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "progress.json"
    store = JsonProgressStore(str(path))

    assert store.save(123456) is True
    assert store.load() == 123456
    assert not (tmp_path / "nested" / "progress.json.tmp").exists()


def test_corrupt_file_falls_back_to_zero(tmp_path):
    path = tmp_path / "progress.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonProgressStore(str(path)).load() == 0


def test_non_numeric_token_falls_back_to_zero(tmp_path):
    path = tmp_path / "progress.json"
    path.write_text(json.dumps({"last_change_number": "abc"}), encoding="utf-8")

    assert JsonProgressStore(str(path)).load() == 0


def test_save_failure_reports_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = JsonProgressStore(str(blocker / "progress.json"))

    assert store.save(1) is False
