"""Default collaborators: real build tools, an external analyzer and JSON reports."""

from capdriver.config import DriverConfig
from capdriver.driver.collaborators import Collaborators
from capdriver.driver.context import ProcessContext, exported_args
from capdriver.driver.layout import ResultsLayout
from capdriver.integrations.analyzer import ExternalAnalyzer
from capdriver.integrations.build_tools import SubprocessBackends, captured_store_path
from capdriver.integrations.merge import CaptureMerger
from capdriver.integrations.reporting import JsonReporter
from capdriver.store.database import ResultsDatabase


def store_path_for(layout: ResultsLayout, process: ProcessContext) -> str:
    # shims running under Buck write to their own store; the merge phase folds them in
    if process.is_compiler_shim and "--buck" in exported_args():
        return str(captured_store_path(layout))
    return str(layout.store)


def build_default_collaborators(
    config: DriverConfig, layout: ResultsLayout, process: ProcessContext
) -> Collaborators:
    store = ResultsDatabase(store_path_for(layout, process))
    return Collaborators(
        backends=SubprocessBackends(config, layout, store),
        engine=ExternalAnalyzer(config, store),
        merger=CaptureMerger(layout, store),
        reporter=JsonReporter(store, config.project_root),
        store=store,
    )


__all__ = ["build_default_collaborators", "store_path_for"]
