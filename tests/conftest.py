"""Root conftest.py for pytest configuration.

Provides a controllable clock for breaker timing tests and the
--run-slow flag to opt in to slow tests (skipped by default).
"""

from __future__ import annotations

import pytest

from keyed_breaker.breaker_config import BreakerConfig
from keyed_breaker.circuit_breaker import BreakerRegistry


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> BreakerRegistry:
    """Registry with default policy (max_retries=2, cool-down 10s) on a fake clock."""
    return BreakerRegistry(BreakerConfig(), clock=clock)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="Run tests marked @pytest.mark.slow"
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
