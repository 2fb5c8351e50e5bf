"""Facts about the current process that steer mode resolution.

The top-level ``capd`` process exports its arguments in ``CAPDRIVER_ARGS``
before running the build. Compiler shims started by that build inherit the
variable, which is how a process tells whether it is the originator.
"""

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

ARGS_ENV_VAR = "CAPDRIVER_ARGS"
ARGS_SEPARATOR = "^"

CLANG_SHIM_NAMES = frozenset({"clang", "clang++", "cc", "c++"})
JAVAC_SHIM_NAMES = frozenset({"javac"})


@dataclass(frozen=True)
class ProcessContext:
    argv: tuple[str, ...]
    is_originator: bool
    invoked_as_clang: bool = False
    invoked_as_javac: bool = False

    @property
    def is_compiler_shim(self) -> bool:
        return self.invoked_as_clang or self.invoked_as_javac

    @classmethod
    def from_environment(
        cls,
        argv: Sequence[str],
        environ: Mapping[str, str] | None = None,
    ) -> "ProcessContext":
        env = os.environ if environ is None else environ
        exe_name = Path(argv[0]).name if argv else ""
        return cls(
            argv=tuple(argv),
            is_originator=ARGS_ENV_VAR not in env,
            invoked_as_clang=exe_name in CLANG_SHIM_NAMES,
            invoked_as_javac=exe_name in JAVAC_SHIM_NAMES,
        )


def export_args(args: Sequence[str]) -> None:
    """Publish the originator's arguments to child processes."""
    os.environ[ARGS_ENV_VAR] = ARGS_SEPARATOR.join(args)


def append_to_exported_args(arg: str) -> None:
    existing = os.environ.get(ARGS_ENV_VAR)
    parts = [existing] if existing is not None else []
    os.environ[ARGS_ENV_VAR] = ARGS_SEPARATOR.join([*parts, arg])


def exported_args(environ: Mapping[str, str] | None = None) -> list[str]:
    env = os.environ if environ is None else environ
    value = env.get(ARGS_ENV_VAR, "")
    return value.split(ARGS_SEPARATOR) if value else []
