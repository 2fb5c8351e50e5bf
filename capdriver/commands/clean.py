"""Prune a results directory by hand."""

import click

from capdriver.commands.common import common_options, load_config
from capdriver.driver.cleaner import clean_results_dir
from capdriver.driver.layout import ResultsLayout
from capdriver.pipeline.ui import print_success, print_warning
from capdriver.store.database import ResultsDatabase
from capdriver.utils.error_handler import handle_exceptions


@click.command()
@handle_exceptions
@common_options
@click.option(
    "--cache-mode",
    is_flag=True,
    help="Keep capture data and canonicalize the store for a build cache",
)
def clean(cache_mode, **options):
    """Delete intermediate outputs from the results directory; reports are kept."""
    config = load_config(options)
    layout = ResultsLayout(config.results_dir)
    if not layout.root.is_dir():
        print_warning(f"No results directory at {layout.root}")
        return
    clean_results_dir(layout, ResultsDatabase(layout.store), cache_mode)
    if not config.quiet:
        print_success(f"Cleaned {layout.root}")
