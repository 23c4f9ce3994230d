"""Producer feeds that push samples into metrics."""

from .feed import Feed, FeedStats, FeedSupervisor
from .sources import CpuLoadSource, RandomWalkSource, source_from_config

__all__ = [
    "Feed",
    "FeedStats",
    "FeedSupervisor",
    "CpuLoadSource",
    "RandomWalkSource",
    "source_from_config",
]
