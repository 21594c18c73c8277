"""Pytest fixtures for yzterm tests."""

import os

import pytest

from yzterm.models import HostProfile


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run live integration tests that require a reachable ssh host",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: marks tests as live integration tests (require a reachable ssh host)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --live flag is passed."""
    if config.getoption("--live"):
        return

    skip_live = pytest.mark.skip(reason="Need --live option to run live tests")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def host() -> HostProfile:
    """A valid profile for a host that is never actually contacted."""
    return HostProfile(
        id="host-1",
        name="staging",
        address="staging.example.com",
        username="deploy",
        port=2222,
    )


@pytest.fixture
def live_destination() -> str:
    """Get the live ssh destination (user@host[:port]) from environment."""
    destination = os.environ.get("YZTERM_TEST_DESTINATION", "")
    if not destination:
        pytest.skip("YZTERM_TEST_DESTINATION environment variable not set")
    return destination
