"""Analyze what earlier capture runs recorded."""

import click

from capdriver.commands.common import common_options, report_options, run_driver
from capdriver.pipeline.structures import Command
from capdriver.utils.error_handler import handle_exceptions


@click.command()
@handle_exceptions
@common_options
@report_options
@click.option("--merge/--no-merge", default=None, help="Merge captured Buck targets before analysis")
@click.option("--changed-files-index", default=None, help="File listing the changed files to analyze")
def analyze(**options):
    """Analyze the captured files and write the reports.

    Captured Buck targets still waiting to be merged are merged first.
    """
    run_driver(Command.ANALYZE, (), options)
