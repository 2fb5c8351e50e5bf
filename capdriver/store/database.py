"""SQLite results store shared by capture, merge, analysis and reporting."""

import sqlite3
import time
from pathlib import Path
from typing import Any

from capdriver.utils.logging import logger

TABLES = {
    "source_files": """
        CREATE TABLE IF NOT EXISTS source_files (
            path TEXT PRIMARY KEY,
            language TEXT NOT NULL,
            command TEXT NOT NULL DEFAULT '',
            captured_at REAL NOT NULL
        )
    """,
    "issues": """
        CREATE TABLE IF NOT EXISTS issues (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            file TEXT NOT NULL,
            line INTEGER NOT NULL DEFAULT 0,
            col INTEGER NOT NULL DEFAULT 0,
            rule TEXT NOT NULL,
            severity TEXT NOT NULL,
            message TEXT NOT NULL
        )
    """,
    "costs": """
        CREATE TABLE IF NOT EXISTS costs (
            procedure TEXT PRIMARY KEY,
            file TEXT NOT NULL,
            cost REAL NOT NULL
        )
    """,
}

ISSUE_COLUMNS = ("file", "line", "col", "rule", "severity", "message")


class ResultsDatabase:
    """Relational store for one results directory.

    The connection opens lazily so that constructing the store never touches
    the disk; ``close()`` may be called any number of times.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), timeout=60)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self.create_schema()
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def create_schema(self) -> None:
        cursor = self.conn.cursor()
        for create_table_sql in TABLES.values():
            cursor.execute(create_table_sql)
        self.conn.commit()

    def commit(self) -> None:
        """Commit the current transaction."""
        try:
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to commit results store changes: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def add_source_files(self, entries: list[tuple[str, str, str]]) -> None:
        """Record captured translation units as (path, language, command)."""
        now = time.time()
        self.conn.executemany(
            "INSERT OR REPLACE INTO source_files (path, language, command, captured_at) "
            "VALUES (?, ?, ?, ?)",
            [(path, language, command, now) for path, language, command in entries],
        )
        self.commit()

    def source_files(self) -> list[dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT path, language, command, captured_at FROM source_files ORDER BY path"
        ).fetchall()
        return [dict(row) for row in rows]

    def is_empty(self) -> bool:
        """True when nothing has been captured."""
        (count,) = self.conn.execute("SELECT COUNT(*) FROM source_files").fetchone()
        return count == 0

    def clear_results(self) -> None:
        self.conn.execute("DELETE FROM issues")
        self.conn.execute("DELETE FROM costs")
        self.commit()

    def add_issues(self, issues: list[dict[str, Any]]) -> None:
        self.conn.executemany(
            f"INSERT INTO issues ({', '.join(ISSUE_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?)",
            [
                (
                    issue["file"],
                    issue.get("line", 0),
                    issue.get("col", 0),
                    issue["rule"],
                    issue.get("severity", "warning"),
                    issue.get("message", ""),
                )
                for issue in issues
            ],
        )
        self.commit()

    def issues(self) -> list[dict[str, Any]]:
        rows = self.conn.execute(
            f"SELECT {', '.join(ISSUE_COLUMNS)} FROM issues ORDER BY file, line, col, rule"
        ).fetchall()
        return [dict(row) for row in rows]

    def add_costs(self, costs: list[dict[str, Any]]) -> None:
        self.conn.executemany(
            "INSERT OR REPLACE INTO costs (procedure, file, cost) VALUES (?, ?, ?)",
            [(c["procedure"], c["file"], c["cost"]) for c in costs],
        )
        self.commit()

    def costs(self) -> list[dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT procedure, file, cost FROM costs ORDER BY file, procedure"
        ).fetchall()
        return [dict(row) for row in rows]

    def merge_from(self, other_db: Path) -> int:
        """Copy captured rows from another results store; returns rows merged."""
        conn = self.conn
        conn.execute("ATTACH DATABASE ? AS src", (str(other_db),))
        try:
            tables = {
                row[0]
                for row in conn.execute("SELECT name FROM src.sqlite_master WHERE type = 'table'")
            }
            merged = 0
            if "source_files" in tables:
                cursor = conn.execute(
                    "INSERT OR REPLACE INTO source_files (path, language, command, captured_at) "
                    "SELECT path, language, command, captured_at FROM src.source_files"
                )
                merged += cursor.rowcount
            if "costs" in tables:
                cursor = conn.execute(
                    "INSERT OR REPLACE INTO costs (procedure, file, cost) "
                    "SELECT procedure, file, cost FROM src.costs"
                )
                merged += cursor.rowcount
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.execute("DETACH DATABASE src")
        logger.debug(f"Merged {merged} rows from {other_db}")
        return merged

    def canonicalize(self) -> None:
        """Make the file byte-stable across runs: no timestamps, sorted rows, compacted."""
        conn = self.conn
        conn.execute("UPDATE source_files SET captured_at = 0")

        conn.execute("CREATE TEMP TABLE sorted_sources AS SELECT * FROM source_files ORDER BY path")
        conn.execute("DELETE FROM source_files")
        conn.execute("INSERT INTO source_files SELECT * FROM sorted_sources")
        conn.execute("DROP TABLE sorted_sources")

        columns = ", ".join(ISSUE_COLUMNS)
        conn.execute(
            f"CREATE TEMP TABLE sorted_issues AS SELECT {columns} FROM issues "
            "ORDER BY file, line, col, rule, message"
        )
        conn.execute("DELETE FROM issues")
        conn.execute("DELETE FROM sqlite_sequence WHERE name = 'issues'")
        conn.execute(f"INSERT INTO issues ({columns}) SELECT {columns} FROM sorted_issues")
        conn.execute("DROP TABLE sorted_issues")

        conn.execute("CREATE TEMP TABLE sorted_costs AS SELECT * FROM costs ORDER BY procedure")
        conn.execute("DELETE FROM costs")
        conn.execute("INSERT INTO costs SELECT * FROM sorted_costs")
        conn.execute("DROP TABLE sorted_costs")
        self.commit()

        conn.execute("VACUUM")
        conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
