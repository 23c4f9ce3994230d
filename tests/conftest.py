"""Shared fixtures."""

import pytest

from signal_dashboard.storage.metrics_store import MetricRegistry


class FakeClock:
    """Wall clock that advances by `step` seconds on every read."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock) -> MetricRegistry:
    return MetricRegistry(clock=clock)


@pytest.fixture
def cpu_registry(registry) -> MetricRegistry:
    """CPU1 (capacity 3) holding 49, 2, 11 after 68 was evicted, and an empty CPU2."""
    cpu1 = registry.create_metric_with_capacity("CPU1", 3)
    registry.create_metric_with_capacity("CPU2", 300)
    for value in (68, 49, 2, 11):
        cpu1.add(value)
    return registry
