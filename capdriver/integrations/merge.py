"""Fold outputs written by child invocations into the canonical results."""

import json
from pathlib import Path

from capdriver.driver.layout import (
    CHANGED_FUNCTIONS_JSON,
    TEST_DETERMINATOR_JSON,
    ResultsLayout,
)
from capdriver.store.database import ResultsDatabase
from capdriver.utils.helpers import save_json_file
from capdriver.utils.logging import logger


class CaptureMerger:
    def __init__(self, layout: ResultsLayout, store: ResultsDatabase):
        self.layout = layout
        self.store = store

    def _child_files(self, pattern: str) -> list[Path]:
        captured = self.layout.captured_dir
        if not captured.is_dir():
            return []
        return sorted(captured.rglob(pattern))

    def merge_captured_targets(self) -> None:
        """Merge every per-target store under captured/ into the results store.

        Raises:
            sqlite3.Error: If a child store is corrupt; a partial merge is not recoverable
        """
        child_dbs = self._child_files("*.db")
        total = 0
        for child_db in child_dbs:
            total += self.store.merge_from(child_db)
        logger.info(f"Merged {total} rows from {len(child_dbs)} captured target(s)")

    def _merge_json_lists(self, name: str, target: Path) -> int:
        merged: dict[str, object] = {}
        for child in self._child_files(name):
            with open(child, encoding="utf-8") as f:
                entries = json.load(f)
            if not isinstance(entries, list):
                raise ValueError(f"{child} does not contain a JSON array")
            for entry in entries:
                merged[json.dumps(entry, sort_keys=True)] = entry
        save_json_file([merged[key] for key in sorted(merged)], target)
        return len(merged)

    def merge_changed_functions(self) -> None:
        count = self._merge_json_lists(CHANGED_FUNCTIONS_JSON, self.layout.changed_functions)
        logger.info(f"Merged {count} changed function(s) into {self.layout.changed_functions}")

    def merge_test_determinator_results(self) -> None:
        count = self._merge_json_lists(TEST_DETERMINATOR_JSON, self.layout.test_determinator)
        logger.info(f"Merged {count} test determinator result(s) into {self.layout.test_determinator}")
