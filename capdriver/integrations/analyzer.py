"""Default analysis engine: an external analyzer command run over the captured files."""

import json
import shlex
import subprocess
from pathlib import Path
from typing import Any

from capdriver.config import DriverConfig
from capdriver.store.database import ResultsDatabase
from capdriver.utils.finding_priority import normalize_severity
from capdriver.utils.helpers import normalize_report_path
from capdriver.utils.logging import get_subprocess_env, logger

DEFAULT_BATCH_SIZE = 200


def parse_analyzer_output(stdout: str) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Accept either a bare list of issues or ``{"issues": [...], "costs": [...]}``.

    Raises:
        json.JSONDecodeError: If the output is not JSON
    """
    if not stdout.strip():
        return [], []
    data = json.loads(stdout)
    if isinstance(data, list):
        return data, []
    if isinstance(data, dict):
        issues = data.get("issues") or data.get("results") or []
        return list(issues), list(data.get("costs") or [])
    return [], []


def normalize_issue(raw: dict[str, Any], project_root: Path) -> dict[str, Any] | None:
    file_path = raw.get("file") or raw.get("path")
    rule = raw.get("rule") or raw.get("check_id") or raw.get("code")
    if not file_path or not rule:
        return None
    try:
        line = int(raw.get("line") or 0)
        col = int(raw.get("col") or raw.get("column") or 0)
    except (TypeError, ValueError):
        return None
    return {
        "file": normalize_report_path(file_path, project_root),
        "line": max(0, line),
        "col": max(0, col),
        "rule": str(rule),
        "severity": normalize_severity(raw.get("severity")),
        "message": str(raw.get("message", "")),
    }


class ExternalAnalyzer:
    """Runs ``analysis.analyzer_command`` in batches and stores the findings."""

    def __init__(self, config: DriverConfig, store: ResultsDatabase, batch_size: int = DEFAULT_BATCH_SIZE):
        self.config = config
        self.store = store
        self.batch_size = batch_size

    def _run(self, command: list[str]) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        logger.debug(f"Running analyzer: {shlex.join(command[:4])} ...")
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            env=get_subprocess_env(),
            cwd=self.config.project_root,
            check=False,
        )
        if result.returncode not in (0, 1):
            logger.warning(f"Analyzer exited with code {result.returncode}: {result.stderr.strip()}")
        try:
            return parse_analyzer_output(result.stdout)
        except json.JSONDecodeError as e:
            logger.error(f"Analyzer output is not valid JSON: {e}")
            return [], []

    def _store(self, raw_issues: list[dict[str, Any]], raw_costs: list[dict[str, Any]]) -> int:
        issues = []
        for raw in raw_issues:
            issue = normalize_issue(raw, self.config.project_root) if isinstance(raw, dict) else None
            if issue is None:
                logger.debug(f"Dropping malformed analyzer finding: {raw!r}")
                continue
            issues.append(issue)
        if issues:
            self.store.add_issues(issues)
        costs = [c for c in raw_costs if isinstance(c, dict) and {"procedure", "file", "cost"} <= c.keys()]
        if costs:
            self.store.add_costs(costs)
        return len(issues)

    def analyze(self, changed_files: frozenset[Path] | None) -> None:
        self.store.clear_results()
        files = [row["path"] for row in self.store.source_files()]
        if changed_files is not None:
            changed = {str(p) for p in changed_files}
            files = [f for f in files if f in changed]

        if not self.config.analyzer_command:
            logger.warning("No analyzer command configured (analysis.analyzer_command); nothing analyzed")
            return

        total = 0
        batches = [files[i:i + self.batch_size] for i in range(0, len(files), self.batch_size)]
        for batch_num, batch in enumerate(batches, 1):
            logger.debug(f"Analyzing batch {batch_num}/{len(batches)} ({len(batch)} files)")
            total += self._store(*self._run([*self.config.analyzer_command, *batch]))
        logger.info(f"Analyzer reported {total} issue(s) across {len(files)} file(s)")

    def whole_program_analysis(self) -> None:
        """Second pass over all captured files at once, for cross-file checks."""
        if not self.config.whole_program_command:
            logger.info("No whole-program analyzer configured, skipping")
            return
        files = [row["path"] for row in self.store.source_files()]
        total = self._store(*self._run([*self.config.whole_program_command, *files]))
        logger.info(f"Whole-program analysis reported {total} issue(s)")
