"""Default capture backends: run the real build tool and record what it compiles.

Native builds are intercepted by putting compiler wrappers first on PATH.
Each wrapper re-enters capdriver as a compiler shim, records the translation
units of that one compiler call and then runs the real compiler.
"""

import os
import shlex
import shutil
import stat
import subprocess
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from capdriver.config import DriverConfig
from capdriver.driver.layout import CAPTURED_DIR, ResultsLayout
from capdriver.driver.modes import (
    ClangCompiler,
    CompilationDbDeps,
    CompilationDbFile,
    JavacCompiler,
)
from capdriver.integrations.buck import (
    COMPILATION_DB_FLAVOR,
    add_flavor,
    split_buck_arguments,
)
from capdriver.integrations.compilation_db import from_json_files
from capdriver.pipeline.ui import print_warning
from capdriver.store.database import ResultsDatabase
from capdriver.utils.helpers import filename_to_absolute
from capdriver.utils.logging import get_subprocess_env, logger

SOURCE_LANGUAGES = {
    ".c": "c",
    ".cc": "c++",
    ".cpp": "c++",
    ".cxx": "c++",
    ".m": "objc",
    ".mm": "objc++",
    ".java": "java",
}

WRAPPER_NAMES = ("cc", "c++", "clang", "clang++", "javac")

# Directories never inventoried when a JVM build tool hides its compiler calls
SKIPPED_DIRS = frozenset({".git", ".gradle", ".idea", "node_modules", "build", "target", "buck-out"})


def language_of(path: str | Path) -> str | None:
    return SOURCE_LANGUAGES.get(Path(path).suffix.lower())


def source_files_in_args(args: Sequence[str]) -> list[str]:
    """Source operands of a compiler command line, skipping option values like ``-o x.c``."""
    sources = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
            continue
        if arg in ("-o", "-MF", "-MT", "-MQ", "-include", "-x", "-d", "-cp", "-classpath", "-sourcepath"):
            skip_next = True
            continue
        if not arg.startswith("-") and language_of(arg) is not None:
            sources.append(arg)
    return sources


def write_wrapper_scripts(wrappers_dir: Path) -> Path:
    wrappers_dir.mkdir(parents=True, exist_ok=True)
    script = f'#!/bin/sh\nexec "{sys.executable}" -m capdriver.shim "$0" "$@"\n'
    for name in WRAPPER_NAMES:
        wrapper = wrappers_dir / name
        wrapper.write_text(script, encoding="utf-8")
        wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return wrappers_dir


def find_real_tool(name: str, exclude_dir: Path | None) -> str | None:
    """Locate ``name`` on PATH, ignoring the wrappers directory."""
    entries = os.environ.get("PATH", "").split(os.pathsep)
    if exclude_dir is not None:
        excluded = os.path.normpath(str(exclude_dir))
        entries = [e for e in entries if os.path.normpath(e) != excluded]
    return shutil.which(name, path=os.pathsep.join(entries))


class SubprocessBackends:
    """Capture backends that drive real build tools as subprocesses."""

    def __init__(
        self,
        config: DriverConfig,
        layout: ResultsLayout,
        store: ResultsDatabase,
        wrappers_dir: Path | None = None,
    ):
        self.config = config
        self.layout = layout
        self.store = store
        self.wrappers_dir = wrappers_dir or layout.wrappers_dir
        self.last_returncode = 0

    def _intercepting_env(self) -> dict[str, str]:
        write_wrapper_scripts(self.wrappers_dir)
        env = get_subprocess_env()
        env["PATH"] = os.pathsep.join([str(self.wrappers_dir), env.get("PATH", "")])
        env["CC"] = str(self.wrappers_dir / "cc")
        env["CXX"] = str(self.wrappers_dir / "c++")
        return env

    def run_build(self, cmd: Sequence[str], intercept: bool = True, cwd: Path | None = None) -> int:
        """Run a build command; a failing build is reported, not raised."""
        env = self._intercepting_env() if intercept else get_subprocess_env()
        logger.info(f"Running build command: {shlex.join(cmd)}")
        result = subprocess.run(list(cmd), env=env, cwd=cwd, check=False)
        self.last_returncode = result.returncode
        if result.returncode != 0:
            logger.warning(f"Build command exited with code {result.returncode}: {shlex.join(cmd)}")
            print_warning(f"Build command exited with code {result.returncode}: {shlex.join(cmd)}")
        return result.returncode

    def record_sources(self, sources: Iterable[str | Path], command: str, cwd: Path | None = None) -> int:
        base = cwd or Path.cwd()
        entries = []
        for source in sources:
            language = language_of(source)
            if language is None:
                continue
            entries.append((str(filename_to_absolute(source, base)), language, command))
        if entries:
            self.store.add_source_files(entries)
        logger.debug(f"Recorded {len(entries)} source file(s)")
        return len(entries)

    def inventory_sources(self, root: Path, suffixes: frozenset[str], command: str) -> int:
        """Record every matching source under ``root``; used when the build hides its compiler calls."""
        results_root = self.layout.root.resolve()
        found = []
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in SKIPPED_DIRS and (current / d).resolve() != results_root
            )
            found.extend(current / name for name in filenames if Path(name).suffix in suffixes)
        return self.record_sources(found, command)

    def _compile_with_real_tool(self, name: str, args: Sequence[str]) -> int:
        real = find_real_tool(name, self.wrappers_dir)
        if real is None:
            logger.warning(f"No real '{name}' found on PATH; translation units recorded only")
            self.last_returncode = 127
            return 127
        return self.run_build([real, *args], intercept=False)

    def ant(self, prog: str, args: Sequence[str]) -> None:
        if self.run_build([prog, *args]) == 0:
            self.inventory_sources(self.config.project_root, frozenset({".java"}), shlex.join([prog, *args]))

    def gradle(self, prog: str, args: Sequence[str]) -> None:
        if self.run_build([prog, *args]) == 0:
            self.inventory_sources(self.config.project_root, frozenset({".java"}), shlex.join([prog, *args]))

    def maven(self, prog: str, args: Sequence[str]) -> None:
        if self.run_build([prog, *args]) == 0:
            self.inventory_sources(self.config.project_root, frozenset({".java"}), shlex.join([prog, *args]))

    def clang(self, compiler: ClangCompiler, prog: str, args: Sequence[str]) -> None:
        if compiler is ClangCompiler.MAKE:
            self.run_build([prog, *args])
            return
        self.record_sources(source_files_in_args(args), shlex.join([prog, *args]))
        self._compile_with_real_tool(Path(prog).name, args)

    def javac(self, compiler: JavacCompiler, prog: str, args: Sequence[str]) -> None:
        if compiler is JavacCompiler.JAVA:
            self.run_build([prog, *args])
            return
        self.record_sources(source_files_in_args(args), shlex.join([prog, *args]))
        self._compile_with_real_tool("javac", args)

    def ndk_build(self, build_cmd: Sequence[str]) -> None:
        self.run_build(build_cmd)

    def xcodebuild(self, prog: str, args: Sequence[str]) -> None:
        env_wrappers = self.wrappers_dir
        self.run_build([prog, *args, f"CC={env_wrappers / 'clang'}", f"CPLUSPLUS={env_wrappers / 'clang++'}"])

    def xcode_compilation_db_files(self, prog: str, args: Sequence[str]) -> list[CompilationDbFile]:
        out_dir = self.layout.xcodebuild_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        db_path = out_dir / "compile_commands.json"
        logger.info(f"Running {shlex.join([prog, *args])} | xcpretty")
        env = get_subprocess_env()
        with subprocess.Popen([prog, *args], stdout=subprocess.PIPE, env=env) as xcodebuild:
            subprocess.run(
                ["xcpretty", "--report", "json-compilation-database", "--output", str(db_path)],
                stdin=xcodebuild.stdout,
                env=env,
                check=False,
            )
            xcodebuild.stdout.close()
        if not db_path.exists():
            print_warning("xcodebuild produced no compilation database")
            return []
        return [CompilationDbFile(str(db_path))]

    def buck_clang_flavor(self, build_cmd: Sequence[str]) -> None:
        self.run_build(build_cmd)

    def buck_genrule(self, prog: str) -> None:
        root = Path(prog)
        self.inventory_sources(root, frozenset({".java"}), f"genrule {prog}")

    def buck_genrule_master(self, build_cmd: Sequence[str]) -> None:
        self.run_build(build_cmd)

    def _buck_query_deps(self, prog: str, targets: Sequence[str], deps: CompilationDbDeps) -> list[str]:
        depth = f", {deps.depth}" if deps.depth is not None else ""
        query = f"kind('(apple|cxx)_(binary|library)', deps(set({' '.join(targets)}){depth}))"
        result = subprocess.run(
            [prog, "query", query],
            capture_output=True,
            text=True,
            env=get_subprocess_env(),
            check=False,
        )
        if result.returncode != 0:
            logger.warning(f"buck query failed: {result.stderr.strip()}")
            return list(targets)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def buck_compilation_db_files(
        self, deps: CompilationDbDeps, prog: str, args: Sequence[str]
    ) -> list[CompilationDbFile]:
        split = split_buck_arguments(args)
        targets = list(split.targets)
        if not targets:
            logger.info("No Buck targets, nothing to capture")
            return []
        if deps.depth != 0:
            targets = self._buck_query_deps(prog, targets, deps)

        cmd = [
            prog,
            split.command or "build",
            *split.not_targets,
            *(add_flavor(t, COMPILATION_DB_FLAVOR) for t in targets),
            "--show-output",
        ]
        logger.info(f"Running {shlex.join(cmd)}")
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            env=get_subprocess_env(),
            cwd=self.config.project_root,
            check=False,
        )
        if result.returncode != 0:
            print_warning(f"Buck failed to build compilation databases: {result.stderr.strip()}")
            return []

        db_files = []
        for line in result.stdout.splitlines():
            parts = line.split(maxsplit=1)
            if len(parts) == 2 and parts[1].endswith(".json"):
                db_files.append(CompilationDbFile(parts[1].strip()))
        return db_files

    def compilation_db(
        self, db_files: Sequence[CompilationDbFile], changed_files: frozenset[Path] | None
    ) -> None:
        commands = from_json_files(list(db_files))
        by_file: dict[Path, str] = {}
        skipped = 0
        for command in commands:
            if changed_files is not None and command.file not in changed_files:
                skipped += 1
                continue
            if language_of(command.file) is None:
                continue
            by_file[command.file] = command.command_line
        if skipped:
            logger.info(f"Skipped {skipped} unchanged translation unit(s)")
        self.store.add_source_files(
            [(str(path), language_of(path), command) for path, command in sorted(by_file.items())]
        )
        logger.info(f"Captured {len(by_file)} translation unit(s) from compilation databases")


def captured_store_path(layout: ResultsLayout, pid: int | None = None) -> Path:
    """Per-process store used by shims running under Buck; merged later."""
    return layout.root / CAPTURED_DIR / f"capture-{pid or os.getpid()}.db"
