"""Runtime configuration for capdriver - centralized configuration management."""

import copy
import json
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from capdriver.driver.exceptions import UserError
from capdriver.driver.modes import (
    Backend,
    BuckMode,
    BuckModeKind,
    BuildSystem,
    CompilationDbDeps,
    CompilationDbFile,
)
from capdriver.utils.exit_codes import ExitCodes
from capdriver.utils.logging import logger

CONFIG_DIR_NAME = ".capdriver"
CONFIG_FILE_NAME = "config.json"
ENV_PREFIX = "CAPDRIVER"

DEFAULTS = {
    "paths": {
        "results_dir": "capdriver-out",
        "project_root": ".",
        "changed_files_index": "",
    },
    "capture": {
        "capture": True,
        "force_integration": "",
        "buck_mode": "",
        "buck_compilation_db_depth": 0,
        "buck_build_args": [],
        "buck_build_args_no_inline": [],
        "generated_classes": "",
        "compilation_dbs": [],
        "compilation_dbs_escaped": [],
        "xcpretty": False,
        "merge": False,
        "genrule_mode": False,
        "export_changed_functions": False,
        "dump_duplicate_symbols": False,
        "linters": False,
    },
    "analysis": {
        "analyzer_command": "",
        "whole_program_concurrency": False,
        "whole_program_command": "",
    },
    "report": {
        "report": True,
        "quiet": False,
        "console_limit": 5,
        "fail_on_bug": False,
        "fail_on_issue_exit_code": ExitCodes.ISSUES_FOUND,
        "buck_cache_mode": False,
        "test_determinator": False,
    },
    "backends": {
        "clang": True,
        "java": True,
        "xcode": True,
    },
    "debug": {
        "enabled": False,
    },
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _coerce(default_value: Any, value: str) -> Any:
    # bool is checked before int because bool subclasses int
    if isinstance(default_value, bool):
        return _parse_bool(value)
    if isinstance(default_value, int):
        return int(value)
    if isinstance(default_value, float):
        return float(value)
    if isinstance(default_value, list):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


def load_runtime_config(
    root: str | Path = ".",
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """
    Load runtime configuration from .capdriver/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (CAPDRIVER_<SECTION>_<KEY>)
    2. .capdriver/config.json file
    3. Built-in defaults

    Args:
        root: Project root to look for the config file
        environ: Environment mapping, defaults to os.environ

    Returns:
        Configuration dictionary with merged values
    """
    env = os.environ if environ is None else environ
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key in cfg[section] and isinstance(value, type(cfg[section][key])):
                                cfg[section][key] = value
                            else:
                                logger.warning(f"Ignoring config entry {section}.{key} in {path}")
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            if env_var in env:
                value = env[env_var]
                try:
                    cfg[section][key] = _coerce(cfg[section][key], value)
                except (ValueError, AttributeError) as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using value: {cfg[section][key]}")

    return cfg


def apply_overrides(cfg: dict[str, Any], overrides: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Layer command-line values over the loaded config; None means 'not given'."""
    merged = copy.deepcopy(cfg)
    for section, values in overrides.items():
        for key, value in values.items():
            if value is None:
                continue
            if key not in merged.get(section, {}):
                raise KeyError(f"Unknown config key {section}.{key}")
            merged[section][key] = value
    return merged


@dataclass(frozen=True)
class DriverConfig:
    """Immutable view of the merged configuration for one invocation."""

    results_dir: Path
    project_root: Path
    capture: bool = True
    force_integration: BuildSystem | None = None
    buck_mode: BuckMode | None = None
    buck_build_args: tuple[str, ...] = ()
    buck_build_args_no_inline: tuple[str, ...] = ()
    generated_classes: str | None = None
    compilation_dbs: tuple[CompilationDbFile, ...] = ()
    xcpretty: bool = False
    merge: bool = False
    genrule_mode: bool = False
    export_changed_functions: bool = False
    dump_duplicate_symbols: bool = False
    linters: bool = False
    analyzer_command: tuple[str, ...] = ()
    whole_program_concurrency: bool = False
    whole_program_command: tuple[str, ...] = ()
    report: bool = True
    quiet: bool = False
    report_console_limit: int | None = 5
    fail_on_bug: bool = False
    fail_on_issue_exit_code: int = ExitCodes.ISSUES_FOUND
    buck_cache_mode: bool = False
    test_determinator: bool = False
    backends: frozenset[Backend] = field(default_factory=lambda: frozenset(Backend))
    changed_files_index: Path | None = None
    debug: bool = False

    @property
    def is_clang_flavors(self) -> bool:
        return self.buck_mode is not None and self.buck_mode.is_clang_flavors

    @property
    def cache_capture(self) -> bool:
        """True when capture data is kept for the Buck cache."""
        return self.genrule_mode or self.is_clang_flavors

    def backend_enabled(self, backend: Backend) -> bool:
        return backend in self.backends


def parse_build_system(value: str) -> BuildSystem | None:
    if not value:
        return None
    try:
        return BuildSystem(value)
    except ValueError:
        choices = ", ".join(b.value for b in BuildSystem)
        raise UserError(f"Unknown build system {value!r}; expected one of: {choices}") from None


def parse_buck_mode(value: str, depth: int) -> BuckMode | None:
    if not value:
        return None
    try:
        kind = BuckModeKind(value)
    except ValueError:
        choices = ", ".join(k.value for k in BuckModeKind)
        raise UserError(f"Unknown buck mode {value!r}; expected one of: {choices}") from None
    if kind is BuckModeKind.CLANG_COMPILATION_DB:
        return BuckMode.clang_compilation_db(CompilationDbDeps.from_setting(depth))
    return BuckMode(kind)


def _resolve(root: Path, value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else root / path


def build_driver_config(cfg: dict[str, Any], cwd: Path | None = None) -> DriverConfig:
    """Turn a merged config dictionary into a DriverConfig."""
    base = (cwd or Path.cwd()).resolve()
    paths = cfg["paths"]
    capture = cfg["capture"]
    analysis = cfg["analysis"]
    report = cfg["report"]

    project_root = _resolve(base, paths["project_root"])
    index = paths["changed_files_index"]
    db_files = tuple(CompilationDbFile(p) for p in capture["compilation_dbs"]) + tuple(
        CompilationDbFile(p, escaped=True) for p in capture["compilation_dbs_escaped"]
    )
    console_limit = report["console_limit"]

    return DriverConfig(
        results_dir=_resolve(base, paths["results_dir"]),
        project_root=project_root,
        capture=capture["capture"],
        force_integration=parse_build_system(capture["force_integration"]),
        buck_mode=parse_buck_mode(capture["buck_mode"], capture["buck_compilation_db_depth"]),
        buck_build_args=tuple(capture["buck_build_args"]),
        buck_build_args_no_inline=tuple(capture["buck_build_args_no_inline"]),
        generated_classes=capture["generated_classes"] or None,
        compilation_dbs=db_files,
        xcpretty=capture["xcpretty"],
        merge=capture["merge"],
        genrule_mode=capture["genrule_mode"],
        export_changed_functions=capture["export_changed_functions"],
        dump_duplicate_symbols=capture["dump_duplicate_symbols"],
        linters=capture["linters"],
        analyzer_command=tuple(shlex.split(analysis["analyzer_command"])),
        whole_program_concurrency=analysis["whole_program_concurrency"],
        whole_program_command=tuple(shlex.split(analysis["whole_program_command"])),
        report=report["report"],
        quiet=report["quiet"],
        report_console_limit=console_limit if console_limit > 0 else None,
        fail_on_bug=report["fail_on_bug"],
        fail_on_issue_exit_code=report["fail_on_issue_exit_code"],
        buck_cache_mode=report["buck_cache_mode"],
        test_determinator=report["test_determinator"],
        backends=frozenset(b for b in Backend if cfg["backends"][b.value]),
        changed_files_index=_resolve(base, index) if index else None,
        debug=cfg["debug"]["enabled"],
    )


def load_driver_config(
    root: str | Path = ".",
    overrides: dict[str, dict[str, Any]] | None = None,
    environ: dict[str, str] | None = None,
) -> DriverConfig:
    cfg = load_runtime_config(root, environ)
    if overrides:
        cfg = apply_overrides(cfg, overrides)
    return build_driver_config(cfg, Path(root))
