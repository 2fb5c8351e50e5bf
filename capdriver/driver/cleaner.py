"""Prune a results directory down to what belongs in a build cache."""

import os
import shutil
from pathlib import Path

from capdriver.driver.collaborators import ResultsStore
from capdriver.driver.layout import PROTECTED_FILES, STORE_NAME, ResultsLayout, dirs_to_clean
from capdriver.utils.logging import LOG_FILE_NAME, logger, release_file_logging

DELETABLE_SUFFIXES = (".txt", ".json")


def files_to_delete(cache_capture: bool) -> frozenset[str]:
    # the store is only worth keeping when capture data is cached
    names = {LOG_FILE_NAME, f"{STORE_NAME}-shm", f"{STORE_NAME}-wal"}
    if not cache_capture:
        names.add(STORE_NAME)
    return frozenset(names)


def should_delete_file(name: str, cache_capture: bool) -> bool:
    base = os.path.basename(name)
    if base in PROTECTED_FILES:
        return False
    return base in files_to_delete(cache_capture) or name.endswith(DELETABLE_SUFFIXES)


def _unlink_if_deletable(path: str, cache_capture: bool) -> None:
    if should_delete_file(path, cache_capture):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def _delete_temp_results(path: str, cache_capture: bool, doomed_dirs: frozenset[str]) -> None:
    try:
        entries = os.listdir(path)
    except NotADirectoryError:
        _unlink_if_deletable(path, cache_capture)
        return
    except FileNotFoundError:
        return

    for entry in entries:
        child = os.path.join(path, entry)
        if entry in doomed_dirs:
            _remove_tree(child)
        elif os.path.islink(child):
            # symlinks below the root are never followed out of the results directory
            _unlink_if_deletable(child, cache_capture)
        else:
            _delete_temp_results(child, cache_capture, doomed_dirs)


def _remove_tree(path: str) -> None:
    try:
        if os.path.islink(path):
            os.unlink(path)
        else:
            shutil.rmtree(path)
    except NotADirectoryError:
        os.unlink(path)
    except FileNotFoundError:
        pass


def clean_results_dir(layout: ResultsLayout, store: ResultsStore, cache_capture: bool) -> None:
    """Delete non-deterministic and intermediate outputs from the results directory.

    Reports and named export outputs always survive. Running it twice is the
    same as running it once.
    """
    if cache_capture:
        store.canonicalize()
    store.close()
    # the log file is one of the deletion candidates
    release_file_logging()

    logger.debug(f"Cleaning results directory {layout.root} (cache_capture={cache_capture})")
    _delete_temp_results(str(layout.root), cache_capture, dirs_to_clean(cache_capture))


def reset_duplicates_file(path: Path) -> None:
    """Start each originating run with an empty duplicate-symbols file."""
    path.unlink(missing_ok=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(mode=0o666)
