"""Tests for results directory cleanup."""

import os
import shutil

import pytest

from conftest import FakeStore

from capdriver.driver.cleaner import clean_results_dir, reset_duplicates_file, should_delete_file
from capdriver.driver.layout import ResultsLayout, dirs_to_clean

ALWAYS_KEPT = ["report.json", "costs-report.json", "changed_functions.json", "test_determinator.json"]


def populate(root):
    for name in [
        *ALWAYS_KEPT,
        "report.txt",
        "bugs.txt",
        "capdriver.log",
        "results.db",
        "results.db-wal",
        "results.db-shm",
        "perf_events.json",
        "tmp/wrappers/cc",
        "stats/capture.stats",
        "captured/capture-1.db",
        "xcodebuild/compile_commands.json",
        "nested/deeper/notes.txt",
        "nested/deeper/data.bin",
    ]:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x", encoding="utf-8")


def remaining(root):
    return sorted(
        os.path.relpath(os.path.join(dirpath, name), root)
        for dirpath, _, filenames in os.walk(root)
        for name in filenames
    )


def test_full_clean_keeps_only_reports(layout):
    populate(layout.root)
    store = FakeStore()
    clean_results_dir(layout, store, cache_capture=False)

    assert remaining(layout.root) == sorted([*ALWAYS_KEPT, os.path.join("nested", "deeper", "data.bin")])
    assert store.closed == 1
    assert store.canonicalized == 0


def test_cache_clean_keeps_capture_data(layout):
    populate(layout.root)
    store = FakeStore()
    clean_results_dir(layout, store, cache_capture=True)

    left = remaining(layout.root)
    assert "results.db" in left
    assert os.path.join("captured", "capture-1.db") in left
    assert "results.db-wal" not in left
    assert "capdriver.log" not in left
    assert not (layout.root / "tmp").exists()
    assert not (layout.root / "stats").exists()
    assert store.canonicalized == 1
    assert store.closed == 1


@pytest.mark.parametrize("cache_capture", [True, False])
def test_clean_is_idempotent(layout, cache_capture):
    populate(layout.root)
    clean_results_dir(layout, FakeStore(), cache_capture)
    first = remaining(layout.root)
    clean_results_dir(layout, FakeStore(), cache_capture)
    assert remaining(layout.root) == first


def test_missing_results_dir_is_tolerated(tmp_path):
    clean_results_dir(ResultsLayout(tmp_path / "gone"), FakeStore(), cache_capture=False)


def test_symlinks_are_not_followed(layout, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "precious.txt").write_text("keep", encoding="utf-8")
    os.symlink(outside, layout.root / "link")

    clean_results_dir(layout, FakeStore(), cache_capture=False)

    assert (outside / "precious.txt").exists()


def test_symlinked_results_dir_is_cleaned(tmp_path):
    real = tmp_path / "real-out"
    (real / "tmp").mkdir(parents=True)
    (real / "tmp" / "scratch").write_text("x", encoding="utf-8")
    for name in ["capdriver.log", "report.txt", "report.json"]:
        (real / name).write_text("x", encoding="utf-8")
    link = tmp_path / "capdriver-out"
    os.symlink(real, link)

    clean_results_dir(ResultsLayout(link), FakeStore(), cache_capture=False)

    assert sorted(os.listdir(real)) == ["report.json"]
    assert link.is_symlink()


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs POSIX FIFOs")
def test_special_file_is_deleted_by_name(layout):
    fifo = layout.root / "x.txt"
    os.mkfifo(fifo)

    clean_results_dir(layout, FakeStore(), cache_capture=False)

    assert not os.path.lexists(fifo)


def test_file_vanishing_mid_walk_is_tolerated(layout, monkeypatch):
    for name in ["report.json", "report.txt", "capdriver.log", "results.db"]:
        (layout.root / name).write_text("x", encoding="utf-8")
    real_unlink = os.unlink

    def unlink_then_vanish(path, *args, **kwargs):
        real_unlink(path, *args, **kwargs)
        raise FileNotFoundError(path)

    monkeypatch.setattr(os, "unlink", unlink_then_vanish)

    clean_results_dir(layout, FakeStore(), cache_capture=False)

    assert remaining(layout.root) == ["report.json"]


def test_dir_vanishing_mid_walk_is_tolerated(layout, monkeypatch):
    populate(layout.root)

    def already_gone(path, *args, **kwargs):
        raise FileNotFoundError(path)

    monkeypatch.setattr(shutil, "rmtree", already_gone)

    clean_results_dir(layout, FakeStore(), cache_capture=False)

    left = remaining(layout.root)
    assert "report.json" in left
    assert "report.txt" not in left


def test_reports_never_deleted():
    for name in ALWAYS_KEPT:
        assert not should_delete_file(name, cache_capture=False)
        assert not should_delete_file(f"sub/{name}", cache_capture=True)


def test_store_kept_only_in_cache_mode():
    assert should_delete_file("results.db", cache_capture=False)
    assert not should_delete_file("results.db", cache_capture=True)


def test_dirs_to_clean():
    assert dirs_to_clean(True) == frozenset({"tmp", "stats"})
    assert dirs_to_clean(False) == frozenset({"tmp", "stats", "captured", "xcodebuild"})


def test_reset_duplicates_file(tmp_path):
    path = tmp_path / "duplicates.txt"
    path.write_text("old symbols", encoding="utf-8")
    reset_duplicates_file(path)
    assert path.read_text(encoding="utf-8") == ""
