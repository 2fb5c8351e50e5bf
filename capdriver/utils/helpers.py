"""Helper utility functions for capdriver."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from capdriver.utils.logging import logger


def filename_to_absolute(path: str | Path, root: Path) -> Path:
    """Resolve ``path`` against ``root`` unless it is already absolute."""
    path = Path(path)
    if not path.is_absolute():
        path = root / path
    return Path(os.path.normpath(path))


def normalize_report_path(file_path: str | Path, project_root: Path) -> str:
    """Report paths are project-relative with forward slashes when inside the project."""
    path = Path(file_path)
    try:
        return path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def load_json_file(file_path: str | Path) -> Any:
    """
    Load and parse a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"JSON file not found: {file_path}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in file {file_path}: {e}")
        raise


def save_json_file(data: Any, file_path: str | Path) -> None:
    """Save data as JSON, replacing the target atomically."""
    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_source_lines(file_path: Path, line: int, context: int = 2) -> list[tuple[int, str]]:
    """Lines around ``line`` (1-based) as (number, text); empty when unreadable."""
    try:
        with open(file_path, encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError as e:
        logger.debug(f"Could not read {file_path} for snippet: {e}")
        return []
    start = max(1, line - context)
    end = min(len(lines), line + context)
    return [(n, lines[n - 1]) for n in range(start, end + 1)]
