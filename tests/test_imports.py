"""Smoke test that every module of the package imports cleanly."""

import importlib

import pytest

MODULES = [
    "capdriver.cli",
    "capdriver.shim",
    "capdriver.config",
    "capdriver.commands.analyze",
    "capdriver.commands.capture",
    "capdriver.commands.clean",
    "capdriver.commands.explore",
    "capdriver.commands.report",
    "capdriver.commands.run",
    "capdriver.driver.driver",
    "capdriver.driver.orchestrator",
    "capdriver.integrations.analyzer",
    "capdriver.integrations.build_tools",
    "capdriver.integrations.merge",
    "capdriver.integrations.reporting",
    "capdriver.store.database",
]


@pytest.mark.parametrize("name", MODULES)
def test_module_imports(name):
    assert importlib.import_module(name) is not None


def test_cli_registers_every_command():
    from capdriver.cli import cli

    assert set(cli.commands) == {
        "analyze", "capture", "clean", "compile", "explore", "report", "report-diff", "run",
    }
