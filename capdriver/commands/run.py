"""Capture, analyze and report in one go."""

import click

from capdriver.commands.common import capture_options, common_options, report_options, run_driver
from capdriver.pipeline.structures import Command
from capdriver.utils.error_handler import handle_exceptions


@click.command()
@handle_exceptions
@common_options
@capture_options
@report_options
@click.argument("build_cmd", nargs=-1, type=click.UNPROCESSED)
def run(build_cmd, **options):
    """Capture a build, analyze what was captured and write the reports.

    \b
    Examples:
      capd run -- make -j4
      capd run --buck-mode compilation-db -- buck build //app:app
      capd run --fail-on-bug -- gradle build
    """
    run_driver(Command.RUN, build_cmd, options)
