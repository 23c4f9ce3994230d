"""Metrics storage with fixed-size ring buffers for time-series samples."""

import math
import time
from datetime import timedelta
from threading import Lock
from typing import Callable, Dict, List, Optional, Union

from ..errors import DuplicateMetric, InvalidCapacity, UnknownMetric
from ..models.sample import Sample


Seconds = Union[float, int, timedelta]
Clock = Callable[[], float]


def _to_seconds(value: Seconds) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def capacity_for(retention: Seconds, interval: Seconds) -> int:
    """Number of samples needed to hold `retention` at one sample per `interval`."""
    retention_s = _to_seconds(retention)
    interval_s = _to_seconds(interval)

    if interval_s <= 0:
        raise InvalidCapacity(f"sampling interval must be positive, got {interval_s}")
    if retention_s <= 0:
        raise InvalidCapacity(f"retention must be positive, got {retention_s}")

    # Round away float noise such as 0.7 / 0.07 == 10.000000000000002
    return math.ceil(round(retention_s / interval_s, 9))


class Metric:
    """
    Named ring buffer of samples.

    Backed by a preallocated list and two cursors: the next write slot and
    the number of valid samples. Once full, every add overwrites the oldest
    sample in place. Adds and snapshots on the same metric are serialized
    by the metric's own lock; nothing here touches any other metric.
    """

    def __init__(self, name: str, capacity: int, clock: Clock = time.time):
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise InvalidCapacity(f"capacity must be an integer, got {capacity!r}")
        if capacity <= 0:
            raise InvalidCapacity(f"capacity must be positive, got {capacity}")

        self._name = name
        self._capacity = capacity
        self._clock = clock
        self._buffer: List[Optional[Sample]] = [None] * capacity
        self._cursor = 0
        self._count = 0
        self._lock = Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def capacity(self) -> int:
        return self._capacity

    def add(self, value: float, timestamp: Optional[float] = None) -> Sample:
        """Append a value, stamped now unless a timestamp is given."""
        if timestamp is None:
            timestamp = self._clock()
        sample = Sample(value=float(value), timestamp=float(timestamp))

        with self._lock:
            self._buffer[self._cursor] = sample
            self._cursor = (self._cursor + 1) % self._capacity
            if self._count < self._capacity:
                self._count += 1

        return sample

    def snapshot(self, max_points: Optional[int] = None) -> List[Sample]:
        """
        Copy of the most recent samples, oldest first.

        Args:
            max_points: Upper bound on returned samples; None or <= 0 means all.
        """
        with self._lock:
            n = self._count
            if max_points is not None and 0 < max_points < n:
                n = max_points
            start = (self._cursor - n) % self._capacity
            return [
                self._buffer[(start + i) % self._capacity]
                for i in range(n)
            ]

    def latest(self) -> Optional[Sample]:
        """Most recent sample, or None if nothing was added yet."""
        with self._lock:
            if self._count == 0:
                return None
            return self._buffer[(self._cursor - 1) % self._capacity]

    def __len__(self) -> int:
        with self._lock:
            return self._count

    def __repr__(self) -> str:
        return f"Metric(name={self._name!r}, capacity={self._capacity}, count={len(self)})"


class MetricRegistry:
    """
    Name to metric mapping shared by producers and the protocol adapter.

    The registry lock only guards the mapping. Appends go straight to a
    metric and never take it, so creating one metric cannot stall ingestion
    on another.
    """

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def create_metric(self, name: str, retention: Seconds, interval: Seconds) -> Metric:
        """Create a metric large enough for `retention` at one sample per `interval`."""
        return self.create_metric_with_capacity(name, capacity_for(retention, interval))

    def create_metric_with_capacity(self, name: str, capacity: int) -> Metric:
        """Create a metric holding at most `capacity` samples."""
        with self._lock:
            if name in self._metrics:
                raise DuplicateMetric(name)
            metric = Metric(name, capacity, clock=self._clock)
            self._metrics[name] = metric
        return metric

    def get(self, name: str) -> Metric:
        """Look up a metric by name."""
        with self._lock:
            metric = self._metrics.get(name)
        if metric is None:
            raise UnknownMetric(name)
        return metric

    def names(self) -> List[str]:
        """All registered metric names, sorted."""
        with self._lock:
            return sorted(self._metrics)

    def summary(self) -> List[Dict]:
        """Name, capacity and current fill of every metric."""
        with self._lock:
            metrics = list(self._metrics.values())

        return [
            {"name": m.name, "capacity": m.capacity, "count": len(m)}
            for m in sorted(metrics, key=lambda m: m.name)
        ]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)
