"""Interfaces the driver core calls out to.

The driver decides *which* backend runs and *when* phases happen; these
collaborators do the actual work. Default implementations live in
``capdriver.integrations``; tests pass recording fakes.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from capdriver.driver.modes import (
    ClangCompiler,
    CompilationDbDeps,
    CompilationDbFile,
    JavacCompiler,
)


class CaptureBackends(Protocol):
    # exit status of the last build or compiler command a backend ran
    last_returncode: int

    def ant(self, prog: str, args: Sequence[str]) -> None: ...

    def buck_clang_flavor(self, build_cmd: Sequence[str]) -> None: ...

    def buck_compilation_db_files(
        self, deps: CompilationDbDeps, prog: str, args: Sequence[str]
    ) -> list[CompilationDbFile]: ...

    def buck_genrule(self, prog: str) -> None: ...

    def buck_genrule_master(self, build_cmd: Sequence[str]) -> None: ...

    def clang(self, compiler: ClangCompiler, prog: str, args: Sequence[str]) -> None: ...

    def compilation_db(
        self, db_files: Sequence[CompilationDbFile], changed_files: frozenset[Path] | None
    ) -> None: ...

    def gradle(self, prog: str, args: Sequence[str]) -> None: ...

    def javac(self, compiler: JavacCompiler, prog: str, args: Sequence[str]) -> None: ...

    def maven(self, prog: str, args: Sequence[str]) -> None: ...

    def ndk_build(self, build_cmd: Sequence[str]) -> None: ...

    def xcodebuild(self, prog: str, args: Sequence[str]) -> None: ...

    def xcode_compilation_db_files(
        self, prog: str, args: Sequence[str]
    ) -> list[CompilationDbFile]: ...


class AnalysisEngine(Protocol):
    def analyze(self, changed_files: frozenset[Path] | None) -> None: ...

    def whole_program_analysis(self) -> None: ...


class CaptureMerger(Protocol):
    def merge_changed_functions(self) -> None: ...

    def merge_captured_targets(self) -> None: ...

    def merge_test_determinator_results(self) -> None: ...


class Reporter(Protocol):
    def write_reports(self, issues_json: Path, costs_json: Path) -> None: ...

    def render_text(
        self, report_json: Path, report_txt: Path, console_limit: int | None, quiet: bool
    ) -> None: ...


class ResultsStore(Protocol):
    def is_empty(self) -> bool: ...

    def close(self) -> None: ...

    def canonicalize(self) -> None: ...


@dataclass
class Collaborators:
    backends: CaptureBackends
    engine: AnalysisEngine
    merger: CaptureMerger
    reporter: Reporter
    store: ResultsStore
