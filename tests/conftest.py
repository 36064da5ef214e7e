"""Pytest configuration and fixtures."""

import pytest

from bioresolve.llm.rate_limit import CircuitBreaker


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-network",
        action="store_true",
        default=False,
        help="Run tests that call the live OpenTargets/ChEMBL APIs",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "network: mark test as requiring network access")


def pytest_collection_modifyitems(config, items):
    """Skip network tests unless --run-network is provided."""
    if config.getoption("--run-network"):
        # --run-network given: do not skip network tests
        return

    skip_network = pytest.mark.skip(reason="Need --run-network option to run live API tests")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip_network)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(clock=clock)
