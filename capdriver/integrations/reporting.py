"""Report writing: JSON reports, the text report, differential reports, and issue exploration."""

from collections import Counter
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from capdriver.pipeline.ui import console, print_status_panel
from capdriver.store.database import ResultsDatabase
from capdriver.utils.finding_priority import PRIORITY_ORDER, normalize_severity, sort_findings
from capdriver.utils.helpers import filename_to_absolute, load_json_file, read_source_lines, save_json_file
from capdriver.utils.logging import logger

DIFFERENTIAL_DIR = "differential"

SEVERITY_STYLES = {
    "critical": "high",
    "high": "high",
    "medium": "medium",
    "low": "low",
}


def format_issue(issue: dict[str, Any]) -> str:
    location = f"{issue['file']}:{issue.get('line', 0)}"
    if issue.get("col"):
        location += f":{issue['col']}"
    return f"{location}: {issue.get('severity', 'warning')}: {issue['rule']}\n  {issue.get('message', '')}"


def issue_key(issue: dict[str, Any]) -> tuple[str, str, str]:
    """Identity of an issue across runs; line numbers shift with unrelated edits."""
    return (issue.get("file", ""), issue.get("rule", ""), issue.get("message", ""))


def severity_counts(issues: list[dict[str, Any]]) -> Counter:
    return Counter(normalize_severity(issue.get("severity")) for issue in issues)


class JsonReporter:
    def __init__(self, store: ResultsDatabase, project_root: Path):
        self.store = store
        self.project_root = project_root

    def write_reports(self, issues_json: Path, costs_json: Path) -> None:
        issues = sort_findings(self.store.issues())
        save_json_file(issues, issues_json)
        save_json_file(self.store.costs(), costs_json)
        logger.info(f"Wrote {len(issues)} issue(s) to {issues_json}")

    def render_text(
        self, report_json: Path, report_txt: Path, console_limit: int | None, quiet: bool
    ) -> None:
        """Write report.txt from report.json and summarize on the console.

        ``console_limit`` caps the issues shown on the console; None shows all.
        """
        issues = load_json_file(report_json)
        counts = severity_counts(issues)

        lines = [format_issue(issue) for issue in issues]
        summary = ", ".join(
            f"{counts[sev]} {sev}" for sev in sorted(counts, key=lambda s: PRIORITY_ORDER.get(s, 6))
        )
        header = f"Found {len(issues)} issue(s)" + (f" ({summary})" if summary else "")
        report_txt.write_text("\n\n".join([header, *lines]) + "\n", encoding="utf-8")
        logger.info(f"Wrote text report to {report_txt}")

        if quiet:
            return

        if not issues:
            print_status_panel("CLEAN", "No issues found", f"Report: {report_json}", level="success")
            return

        shown = issues if console_limit is None else issues[:console_limit]
        table = Table(show_header=True, box=None, padding=(0, 2))
        table.add_column("Severity", width=9)
        table.add_column("Location", style="path")
        table.add_column("Rule", style="cmd")
        table.add_column("Message")
        for issue in shown:
            sev = normalize_severity(issue.get("severity"))
            style = SEVERITY_STYLES.get(sev, "dim")
            table.add_row(
                f"[{style}]{sev}[/{style}]",
                escape(f"{issue['file']}:{issue.get('line', 0)}"),
                escape(issue["rule"]),
                escape(issue.get("message", "")),
            )
        console.print(table)
        if len(shown) < len(issues):
            console.print(f"[dim]... and {len(issues) - len(shown)} more, see {escape(str(report_txt))}[/dim]")

        worst = min((PRIORITY_ORDER.get(s, 6) for s in counts), default=6)
        level = "high" if worst <= PRIORITY_ORDER["high"] else "medium" if worst <= PRIORITY_ORDER["medium"] else "low"
        print_status_panel("ISSUES", header, f"Report: {report_txt}", level=level)


def report_diff(current: Path, previous: Path, out_dir: Path) -> dict[str, int]:
    """Split two reports into introduced, fixed and preexisting issues.

    Writes one JSON file per category under ``out_dir/differential``.
    """
    current_issues = load_json_file(current)
    previous_issues = load_json_file(previous)
    previous_keys = {issue_key(issue) for issue in previous_issues}
    current_keys = {issue_key(issue) for issue in current_issues}

    categories = {
        "introduced": [i for i in current_issues if issue_key(i) not in previous_keys],
        "fixed": [i for i in previous_issues if issue_key(i) not in current_keys],
        "preexisting": [i for i in current_issues if issue_key(i) in previous_keys],
    }

    diff_dir = out_dir / DIFFERENTIAL_DIR
    for name, issues in categories.items():
        save_json_file(sort_findings(issues), diff_dir / f"{name}.json")
    counts = {name: len(issues) for name, issues in categories.items()}
    logger.info(f"Differential report written to {diff_dir}: {counts}")
    return counts


def explore(report_json: Path, project_root: Path, select: int | None = None) -> list[dict[str, Any]]:
    """Print the issues of a report, or one issue with its source context.

    Raises:
        IndexError: If ``select`` is out of range
    """
    issues = load_json_file(report_json)
    if select is None:
        for index, issue in enumerate(issues):
            console.print(f"[dim]#{index}[/dim] {escape(format_issue(issue))}")
        return issues

    if not 0 <= select < len(issues):
        raise IndexError(f"issue #{select} out of range, report has {len(issues)} issue(s)")
    issue = issues[select]
    snippet = read_source_lines(filename_to_absolute(issue["file"], project_root), issue.get("line", 0))
    body = "\n".join(
        f"{'>' if n == issue.get('line') else ' '} {n:5d} | {escape(text)}" for n, text in snippet
    )
    console.print(
        Panel(
            f"{escape(issue.get('message', ''))}\n\n{body}" if body else escape(issue.get("message", "")),
            title=f"[bold]#{select} {escape(issue['rule'])}[/bold] {escape(issue['file'])}:{issue.get('line', 0)}",
            border_style="blue",
        )
    )
    return [issue]
