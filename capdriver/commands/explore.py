"""Browse the issues of the last report."""

import click

from capdriver.commands.common import common_options, load_config
from capdriver.driver.exceptions import UserError
from capdriver.driver.layout import ResultsLayout
from capdriver.integrations.reporting import explore as explore_report
from capdriver.utils.error_handler import handle_exceptions


@click.command()
@handle_exceptions
@common_options
@click.option("--select", type=int, default=None, help="Show one issue, by index, with its source")
def explore(select, **options):
    """List the reported issues, or show one of them in its source context."""
    config = load_config(options)
    layout = ResultsLayout(config.results_dir)
    if not layout.report_json.exists():
        raise UserError(f"No report found at {layout.report_json}; run `capd analyze` first")
    try:
        explore_report(layout.report_json, config.project_root, select)
    except IndexError as e:
        raise UserError(str(e)) from e
