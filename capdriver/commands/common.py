"""Options shared by every capd command that drives a build or reads its results."""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from capdriver.config import DriverConfig, load_driver_config
from capdriver.driver.context import ProcessContext
from capdriver.driver.driver import Driver
from capdriver.driver.modes import BuckModeKind, BuildSystem
from capdriver.pipeline.structures import Command

BUILD_SYSTEM_CHOICES = [b.value for b in BuildSystem]
BUCK_MODE_CHOICES = [k.value for k in BuckModeKind]


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Project location, output and debugging options."""
    options = [
        click.option("--root", default=".", type=click.Path(file_okay=False), help="Project root"),
        click.option("--results-dir", "-o", default=None, help="Results directory (default: capdriver-out)"),
        click.option("--quiet", "-q", is_flag=True, default=None, help="Minimal console output"),
        click.option("--debug", is_flag=True, default=None, help="Write perf_events.json and debug details"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def capture_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options that steer mode resolution and capture."""
    options = [
        click.option(
            "--force-integration",
            type=click.Choice(BUILD_SYSTEM_CHOICES),
            default=None,
            help="Treat the build command as this build system regardless of its name",
        ),
        click.option(
            "--buck-mode",
            type=click.Choice(BUCK_MODE_CHOICES),
            default=None,
            help="How to capture Buck builds",
        ),
        click.option(
            "--buck-compilation-db-depth",
            type=int,
            default=None,
            help="Dependency depth for --buck-mode compilation-db (0: targets only, <0: all)",
        ),
        click.option("--buck-build-arg", "buck_build_args", multiple=True, help="Extra argument for Buck builds"),
        click.option(
            "--buck-build-arg-no-inline",
            "buck_build_args_no_inline",
            multiple=True,
            help="Extra Buck argument kept on the command line instead of the argsfile",
        ),
        click.option(
            "--compilation-database",
            "compilation_dbs",
            multiple=True,
            help="Capture from this clang compilation database",
        ),
        click.option(
            "--compilation-database-escaped",
            "compilation_dbs_escaped",
            multiple=True,
            help="Like --compilation-database, for databases with shell-escaped commands",
        ),
        click.option("--generated-classes", default=None, help="Capture Java classes generated by a Buck genrule"),
        click.option("--xcpretty/--no-xcpretty", default=None, help="Capture xcodebuild through xcpretty"),
        click.option("--merge/--no-merge", default=None, help="Always merge captured Buck targets"),
        click.option("--genrule-mode/--no-genrule-mode", default=None, help="Capture for Buck genrule compatibility"),
        click.option("--changed-files-index", default=None, help="File listing the changed files to analyze"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def report_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options for analysis, reporting and the failure epilogue."""
    options = [
        click.option("--analyzer-command", default=None, help="Analyzer to run on captured files"),
        click.option("--report/--no-report", default=None, help="Write the reports after analysis"),
        click.option("--fail-on-bug/--no-fail-on-bug", default=None, help="Exit non-zero when issues are reported"),
        click.option("--fail-on-issue-exit-code", type=int, default=None, help="Exit code for --fail-on-bug"),
        click.option(
            "--buck-cache-mode/--no-buck-cache-mode",
            default=None,
            help="Prune the results directory for a build cache after the run",
        ),
        click.option("--console-limit", type=int, default=None, help="Issues shown on the console (0: all)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_overrides(options: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Map command-line options onto config sections; unset options stay None."""

    def listed(name: str) -> list[str] | None:
        values = options.get(name)
        return list(values) if values else None

    return {
        "paths": {
            "results_dir": options.get("results_dir"),
            "changed_files_index": options.get("changed_files_index"),
        },
        "capture": {
            "force_integration": options.get("force_integration"),
            "buck_mode": options.get("buck_mode"),
            "buck_compilation_db_depth": options.get("buck_compilation_db_depth"),
            "buck_build_args": listed("buck_build_args"),
            "buck_build_args_no_inline": listed("buck_build_args_no_inline"),
            "compilation_dbs": listed("compilation_dbs"),
            "compilation_dbs_escaped": listed("compilation_dbs_escaped"),
            "generated_classes": options.get("generated_classes"),
            "xcpretty": options.get("xcpretty"),
            "merge": options.get("merge"),
            "genrule_mode": options.get("genrule_mode"),
        },
        "analysis": {
            "analyzer_command": options.get("analyzer_command"),
        },
        "report": {
            "quiet": options.get("quiet"),
            "report": options.get("report"),
            "fail_on_bug": options.get("fail_on_bug"),
            "fail_on_issue_exit_code": options.get("fail_on_issue_exit_code"),
            "buck_cache_mode": options.get("buck_cache_mode"),
            "console_limit": options.get("console_limit"),
        },
        "debug": {
            "enabled": options.get("debug"),
        },
    }


def load_config(options: dict[str, Any]) -> DriverConfig:
    root = Path(options.get("root") or ".")
    return load_driver_config(root, build_overrides(options))


def run_driver(command: Command, build_cmd: tuple[str, ...], options: dict[str, Any]) -> None:
    """Run one command through the Driver and exit with the build's status if it failed."""
    config = load_config(options)
    process = ProcessContext.from_environment(sys.argv)
    returncode = Driver(config, process, command=command).run(build_cmd)
    if returncode != 0:
        sys.exit(returncode)
