"""Producer threads that poll data sources into metrics."""

import logging
import time
from dataclasses import dataclass
from threading import Event, Lock, Thread
from typing import List, Optional

from ..storage.metrics_store import Metric
from .sources import Source


logger = logging.getLogger(__name__)


@dataclass
class FeedStats:
    """Statistics for a single feed."""
    samples_added: int = 0
    source_errors: int = 0
    start_time: float = 0.0


class Feed:
    """
    Polls a source every `period` seconds and appends the value to a metric.

    Runs until the shared stop event is set. A failing source call is
    logged and counted, the feed keeps polling.
    """

    def __init__(self, metric: Metric, source: Source, period: float, stop_event: Event):
        if period <= 0:
            raise ValueError(f"feed period must be positive, got {period}")

        self.metric = metric
        self.source = source
        self.period = period
        self._stop_event = stop_event
        self._thread: Optional[Thread] = None
        self._stats = FeedStats()
        self._stats_lock = Lock()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stats = FeedStats(start_time=time.time())
        self._thread = Thread(
            target=self._run,
            daemon=True,
            name=f"feed-{self.metric.name}",
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the feed thread. Returns True if it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                value = float(self.source())
            except (TypeError, ValueError) as e:
                with self._stats_lock:
                    self._stats.source_errors += 1
                logger.warning("Source for %s returned a non-numeric value: %s", self.metric.name, e)
            except Exception as e:
                with self._stats_lock:
                    self._stats.source_errors += 1
                logger.warning("Source for %s failed: %s", self.metric.name, e)
            else:
                self.metric.add(value)
                with self._stats_lock:
                    self._stats.samples_added += 1

            self._stop_event.wait(self.period)

    def get_stats(self) -> FeedStats:
        with self._stats_lock:
            return FeedStats(
                samples_added=self._stats.samples_added,
                source_errors=self._stats.source_errors,
                start_time=self._stats.start_time,
            )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class FeedSupervisor:
    """Starts feeds and stops all of them through one shutdown event."""

    def __init__(self):
        self._stop_event = Event()
        self._feeds: List[Feed] = []
        self._running = False

    def add(self, metric: Metric, source: Source, period: float = 1.0) -> Feed:
        """Register a feed. It starts with the supervisor, or now if already running."""
        feed = Feed(metric, source, period, self._stop_event)
        self._feeds.append(feed)
        if self._running:
            feed.start()
        return feed

    def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._stop_event.clear()
        for feed in self._feeds:
            feed.start()
        logger.info("Started %d feed(s)", len(self._feeds))

    def stop(self, timeout: float = 2.0) -> None:
        """Signal every feed to stop and wait up to `timeout` seconds for each."""
        self._stop_event.set()
        for feed in self._feeds:
            if not feed.join(timeout=timeout):
                logger.warning("Feed %s did not stop within %.1fs", feed.metric.name, timeout)
        self._running = False

    @property
    def feeds(self) -> List[Feed]:
        return list(self._feeds)

    @property
    def is_running(self) -> bool:
        return self._running
