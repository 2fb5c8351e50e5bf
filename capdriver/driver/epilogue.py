"""Run prologue, run epilogue and the diagnostics that end a run early."""

import json
import os
import sys
from pathlib import Path

from capdriver import __version__
from capdriver.config import DriverConfig
from capdriver.driver.cleaner import clean_results_dir, reset_duplicates_file
from capdriver.driver.layout import ResultsLayout
from capdriver.driver.modes import (
    Analyze,
    BuckCompilationDb,
    Clang,
    Mode,
    XcodeXcpretty,
)
from capdriver.pipeline.structures import PipelineContext
from capdriver.pipeline.ui import print_progress, print_warning
from capdriver.utils.helpers import filename_to_absolute
from capdriver.utils.logging import logger


def clean_compilation_command(mode: Mode) -> str | None:
    """Clean command to suggest when nothing got captured."""
    match mode:
        case BuckCompilationDb(prog=prog) | Clang(prog=prog):
            return f"{prog} clean"
        case XcodeXcpretty(prog=prog, args=args):
            return " ".join([prog, *args, "clean"])
        case _:
            return None


def nothing_to_analyze(mode: Mode) -> str:
    """Warn that capture produced nothing and say how to recover; returns the warning."""
    message = "Nothing to compile."
    if isinstance(mode, Analyze):
        message += " Have you run `capd capture`?"
    clean_command = clean_compilation_command(mode)
    if clean_command is not None:
        message += f" Try running `{clean_command}` first."
    else:
        message += " Try cleaning the build first."
    logger.info(message)
    print_warning(message)
    print_progress("There was nothing to analyze.")
    return message


def fail_on_issue_epilogue(layout: ResultsLayout, exit_code: int) -> None:
    """Exit with ``exit_code`` when the findings report is non-empty.

    An unreadable report is logged and otherwise ignored: the report having
    been written is what matters for the run itself.
    """
    issues_json = layout.report_json
    try:
        with open(issues_json, encoding="utf-8") as f:
            issues = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Internal error: failed to read report file '{issues_json}': {e}")
        return
    if issues:
        logger.info(f"{len(issues)} issue(s) reported, exiting with code {exit_code}")
        sys.exit(exit_code)


def run_prologue(mode: Mode, ctx: PipelineContext) -> None:
    with ctx.telemetry.instrumented("run_prologue"):
        if ctx.process.is_originator:
            logger.info(f"capdriver version {__version__}")
        if ctx.config.debug:
            logger.debug(mode.describe())
        if ctx.process.is_originator:
            if ctx.config.dump_duplicate_symbols:
                reset_duplicates_file(ctx.layout.duplicates)
            # the Buck daemon would miss changes to the Buck or capdriver config
            os.environ["NO_BUCKD"] = "1"


def run_epilogue(ctx: PipelineContext) -> None:
    with ctx.telemetry.instrumented("run_epilogue"):
        if ctx.process.is_originator and ctx.config.fail_on_bug:
            fail_on_issue_epilogue(ctx.layout, ctx.config.fail_on_issue_exit_code)
        if ctx.config.buck_cache_mode:
            clean_results_dir(ctx.layout, ctx.collaborators.store, ctx.config.cache_capture)


def read_changed_files_index(config: DriverConfig) -> frozenset[Path] | None:
    """Source files listed in the changed-files index, resolved against the project root."""
    index = config.changed_files_index
    if index is None:
        return None
    try:
        lines = index.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.error(f"Error reading the changed files index '{index}': {e}")
        return None
    changed = set()
    for line in lines:
        line = line.strip()
        if not line:
            continue
        changed.add(filename_to_absolute(line, config.project_root))
    return frozenset(changed)
