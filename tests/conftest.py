"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from backend_monitor.health.aggregator import HealthAggregator
from tests.helpers import FakeClock, routed_transport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_aggregator() -> Callable[..., HealthAggregator]:
    """Aggregator whose probes hit an in-memory transport instead of the network."""

    def _make(routes: dict[str, tuple[int, float]], calls: list[str] | None = None) -> HealthAggregator:
        return HealthAggregator(transport=routed_transport(routes, calls))

    return _make
