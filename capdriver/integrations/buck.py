"""Buck command-line rewriting shared by the flavors and compilation-database captures."""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

CAPTURE_FLAVOR = "capdriver-capture-all"
COMPILATION_DB_FLAVOR = "compilation-database"

# Options whose value is the next token, so it is never mistaken for a target
OPTIONS_WITH_VALUE = frozenset({
    "-c",
    "--config",
    "--config-file",
    "-j",
    "--num-threads",
    "--out",
    "--build-report",
    "--target-platforms",
    "-v",
    "--verbose",
})


@dataclass(frozen=True)
class BuckArguments:
    """A Buck invocation split into subcommand, non-target arguments and targets."""

    command: str
    not_targets: tuple[str, ...]
    targets: tuple[str, ...]

    @property
    def all_args(self) -> list[str]:
        return [*self.not_targets, *self.targets]


def is_target(arg: str) -> bool:
    return "//" in arg or arg.startswith(":")


def split_buck_arguments(args: Sequence[str]) -> BuckArguments:
    """Split ``build [options] targets...`` (the part after the buck executable)."""
    if not args:
        return BuckArguments(command="", not_targets=(), targets=())

    command, *rest = args
    not_targets: list[str] = []
    targets: list[str] = []
    expects_value = False
    for arg in rest:
        if expects_value:
            not_targets.append(arg)
            expects_value = False
        elif arg.startswith("-"):
            not_targets.append(arg)
            expects_value = arg in OPTIONS_WITH_VALUE
        elif is_target(arg):
            targets.append(arg)
        else:
            not_targets.append(arg)
    return BuckArguments(command=command, not_targets=tuple(not_targets), targets=tuple(targets))


def add_flavor(target: str, flavor: str) -> str:
    if "#" in target:
        return f"{target},{flavor}"
    return f"{target}#{flavor}"


def add_flavors_to_buck_arguments(args: Sequence[str], flavor: str) -> BuckArguments:
    split = split_buck_arguments(args)
    return BuckArguments(
        command=split.command,
        not_targets=split.not_targets,
        targets=tuple(add_flavor(target, flavor) for target in split.targets),
    )


def store_args_in_file(args: Sequence[str], directory: Path) -> list[str]:
    """Write arguments one per line and return the ``@argsfile`` reference."""
    directory.mkdir(parents=True, exist_ok=True)
    args_file = directory / f"buck-args-{uuid.uuid4().hex}.txt"
    args_file.write_text("".join(f"{arg}\n" for arg in args), encoding="utf-8")
    return [f"@{args_file}"]
