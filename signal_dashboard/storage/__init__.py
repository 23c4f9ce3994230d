"""Storage layer for metric samples."""

from .metrics_store import Metric, MetricRegistry, capacity_for

__all__ = ["Metric", "MetricRegistry", "capacity_for"]
