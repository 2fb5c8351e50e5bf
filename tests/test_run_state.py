"""Tests for the persisted run state."""

import json

from capdriver import __version__
from capdriver.driver.run_state import FileRunState


def test_fresh_state_has_no_pending_merge(tmp_path):
    assert FileRunState(tmp_path / ".run_state.json").get_merge_pending() is False


def test_state_survives_reload(tmp_path):
    path = tmp_path / ".run_state.json"
    state = FileRunState(path)
    state.set_merge_pending(True)
    state.record_command("capture")
    state.store()

    reloaded = FileRunState(path)
    assert reloaded.get_merge_pending() is True
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["last_command"] == "capture"
    assert data["version"] == __version__


def test_unsaved_changes_are_not_visible(tmp_path):
    path = tmp_path / ".run_state.json"
    FileRunState(path).set_merge_pending(True)
    assert FileRunState(path).get_merge_pending() is False


def test_corrupt_state_starts_fresh(tmp_path):
    path = tmp_path / ".run_state.json"
    path.write_text("{truncated", encoding="utf-8")
    assert FileRunState(path).get_merge_pending() is False


def test_non_object_state_starts_fresh(tmp_path):
    path = tmp_path / ".run_state.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert FileRunState(path).get_merge_pending() is False


def test_store_leaves_no_temporary_files(tmp_path):
    state = FileRunState(tmp_path / "out" / ".run_state.json")
    state.store()
    assert [p.name for p in (tmp_path / "out").iterdir()] == [".run_state.json"]
