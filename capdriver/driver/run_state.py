"""Pipeline state that survives between capd invocations.

The only decision that depends on it is whether captured child outputs still
need merging: a Buck capture sets the flag, the next analysis clears it.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from capdriver import __version__
from capdriver.utils.logging import logger


class RunState(Protocol):
    def get_merge_pending(self) -> bool:
        ...

    def set_merge_pending(self, value: bool) -> None:
        ...

    def record_command(self, command: str) -> None:
        ...

    def store(self) -> None:
        ...


class FileRunState:
    """Run state persisted as JSON inside the results directory."""

    def __init__(self, path: Path):
        self.path = path
        self._data = self._load()

    def _fresh(self) -> dict[str, Any]:
        return {"version": __version__, "merge_capture": False, "last_command": None}

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return self._fresh()
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read run state {self.path}, starting fresh: {e}")
            return self._fresh()
        if not isinstance(data, dict):
            logger.warning(f"Run state {self.path} is not an object, starting fresh")
            return self._fresh()
        state = self._fresh()
        state.update(data)
        return state

    def get_merge_pending(self) -> bool:
        return bool(self._data.get("merge_capture", False))

    def set_merge_pending(self, value: bool) -> None:
        self._data["merge_capture"] = value

    def record_command(self, command: str) -> None:
        self._data["last_command"] = command

    def store(self) -> None:
        """Write atomically so concurrent readers never see a partial file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data["version"] = __version__
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".run_state.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
