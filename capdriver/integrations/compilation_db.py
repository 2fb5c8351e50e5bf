"""Reading clang JSON compilation databases."""

import json
import shlex
from dataclasses import dataclass
from pathlib import Path

from capdriver.driver.modes import CompilationDbFile
from capdriver.utils.helpers import filename_to_absolute
from capdriver.utils.logging import logger


@dataclass(frozen=True)
class CompilationCommand:
    """One translation unit from a compilation database."""

    directory: Path
    file: Path
    arguments: tuple[str, ...]

    @property
    def command_line(self) -> str:
        return shlex.join(self.arguments)


def _arguments_of(entry: dict, escaped: bool) -> tuple[str, ...]:
    if "arguments" in entry:
        return tuple(str(arg) for arg in entry["arguments"])
    command = entry.get("command", "")
    if escaped:
        return tuple(shlex.split(command))
    return tuple(command.split())


def load_compilation_database(db: CompilationDbFile) -> list[CompilationCommand]:
    """Parse one compilation database; malformed entries are skipped with a warning.

    Raises:
        OSError: If the file cannot be read
    """
    with open(db.path, encoding="utf-8") as f:
        try:
            entries = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Compilation database {db.path} is not valid JSON: {e}")
            return []

    if not isinstance(entries, list):
        logger.warning(f"Compilation database {db.path} is not a JSON array, skipping")
        return []

    commands = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or "file" not in entry or "directory" not in entry:
            logger.warning(f"Skipping malformed entry {index} in {db.path}")
            continue
        directory = Path(entry["directory"])
        commands.append(
            CompilationCommand(
                directory=directory,
                file=filename_to_absolute(entry["file"], directory),
                arguments=_arguments_of(entry, db.escaped),
            )
        )
    logger.debug(f"Loaded {len(commands)} entries from {db.path}")
    return commands


def from_json_files(db_files: list[CompilationDbFile]) -> list[CompilationCommand]:
    commands: list[CompilationCommand] = []
    for db in db_files:
        commands.extend(load_compilation_database(db))
    return commands
