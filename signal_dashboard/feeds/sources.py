"""Data sources that produce one value per call."""

import random
from typing import Callable, Optional

import psutil

from ..config import SourceConfig


Source = Callable[[], float]


class RandomWalkSource:
    """
    Simulated signal that keeps changing, but not entirely at random.

    The value drifts toward the middle of its range, so it stays roughly
    between 0 and `maximum` while occasionally overshooting the top.
    It never goes below 0.
    """

    def __init__(self, maximum: float = 100.0, volatility: float = 0.2, seed: Optional[int] = None):
        self.maximum = maximum
        self.volatility = volatility
        self._rng = random.Random(seed)
        self._value = self._rng.random()

    def __call__(self) -> float:
        rnd = 2 * (self._rng.random() - 0.5)
        change = self.volatility * rnd
        change += (0.5 - self._value) * 0.1
        self._value += change
        return max(0.0, self._value * self.maximum)


class CpuLoadSource:
    """CPU utilisation in percent, for one core or the whole machine."""

    def __init__(self, core: Optional[int] = None):
        if core is not None:
            cores = psutil.cpu_count() or 1
            if not 0 <= core < cores:
                raise ValueError(f"CPU core {core} out of range (0-{cores - 1})")
        self.core = core

        # First call only sets the reference point and always reports 0.0
        psutil.cpu_percent(interval=None, percpu=core is not None)

    def __call__(self) -> float:
        if self.core is None:
            return float(psutil.cpu_percent(interval=None))
        return float(psutil.cpu_percent(interval=None, percpu=True)[self.core])


def source_from_config(config: SourceConfig) -> Source:
    """Build the data source described by a metric's source section."""
    if config.kind == "cpu":
        return CpuLoadSource(core=config.core)
    return RandomWalkSource(maximum=config.maximum, volatility=config.volatility)
