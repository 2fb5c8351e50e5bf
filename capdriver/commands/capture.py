"""Capture a build, or run it with the capture environment but without capturing."""

import click

from capdriver.commands.common import capture_options, common_options, run_driver
from capdriver.pipeline.structures import Command
from capdriver.utils.error_handler import handle_exceptions


@click.command()
@handle_exceptions
@common_options
@capture_options
@click.argument("build_cmd", nargs=-1, type=click.UNPROCESSED)
def capture(build_cmd, **options):
    """Capture the translation units of a build without analyzing them.

    The build command follows ``--``; without one, the configured compilation
    databases are captured.

    \b
    Examples:
      capd capture -- make -j4
      capd capture --buck-mode clang-flavors -- buck build //app:app
      capd capture --compilation-database build/compile_commands.json
    """
    run_driver(Command.CAPTURE, build_cmd, options)


@click.command("compile")
@handle_exceptions
@common_options
@capture_options
@click.argument("build_cmd", nargs=-1, type=click.UNPROCESSED)
def compile_command(build_cmd, **options):
    """Run the build command without capturing or analyzing anything.

    \b
    Example:
      capd compile -- make -j4
    """
    run_driver(Command.COMPILE, build_cmd, options)
