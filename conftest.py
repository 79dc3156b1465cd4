"""Pytest configuration: long running tests are skipped unless asked for."""

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-skipped",
        action="store_true",
        default=False,
        help="Also run tests marked as skipped",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "skipped: long running test, only run with --run-skipped."
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-skipped"):
        return
    skipper = pytest.mark.skip(reason="Only run when --run-skipped is given")
    for item in items:
        if "skipped" in item.keywords:
            item.add_marker(skipper)
