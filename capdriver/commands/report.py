"""Write reports from the results store, and compare two reports."""

from pathlib import Path

import click

from capdriver.commands.common import common_options, load_config, report_options, run_driver
from capdriver.integrations.reporting import report_diff
from capdriver.pipeline.structures import Command
from capdriver.pipeline.ui import print_status_panel
from capdriver.utils.error_handler import handle_exceptions


@click.command()
@handle_exceptions
@common_options
@report_options
def report(**options):
    """Rewrite report.json, costs-report.json and report.txt from the results store."""
    run_driver(Command.REPORT, (), options)


@click.command("report-diff")
@handle_exceptions
@common_options
@click.option(
    "--from", "previous",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Report of the base revision",
)
@click.option(
    "--to", "current",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Report of the revision under review",
)
def report_diff_command(previous, current, **options):
    """Split two reports into introduced, fixed and preexisting issues.

    The three lists are written under <results-dir>/differential/.

    \b
    Example:
      capd report-diff --from base/report.json --to capdriver-out/report.json
    """
    config = load_config(options)
    counts = report_diff(Path(current), Path(previous), config.results_dir)
    if not config.quiet:
        level = "medium" if counts["introduced"] else "success"
        print_status_panel(
            "DIFF",
            f"{counts['introduced']} introduced, {counts['fixed']} fixed, {counts['preexisting']} preexisting",
            f"Written to: {config.results_dir / 'differential'}",
            level=level,
        )
