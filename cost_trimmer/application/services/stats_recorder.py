"""Statistics recorder: atomic hit/miss/bypass counters and cost-saved estimate."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from cost_trimmer.domain.entities import StatsSnapshot

logger = logging.getLogger(__name__)

StatsListener = Callable[[StatsSnapshot], None]


class StatsRecorder:
    """Counters for read outcomes, safe under threads and overlapping tasks.

    Counters only grow for the lifetime of the recorder; reset() is the
    explicit operator action. Listeners registered via subscribe() receive a
    snapshot after every recorded outcome (UI bindings poll or subscribe
    here, never on the cache).
    """

    def __init__(self, cost_per_read: float) -> None:
        """Initialize counters.

        Args:
            cost_per_read: Estimated cost of one billed read (injected, not hardcoded).
        """
        if cost_per_read < 0:
            raise ValueError("cost_per_read must not be negative")
        self.cost_per_read = cost_per_read
        self._hits = 0
        self._misses = 0
        self._bypasses = 0
        self._lock = threading.Lock()
        self._listeners: list[StatsListener] = []

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def record_bypass(self) -> None:
        """Record a read that skipped the cache (counted neither as hit nor miss)."""
        with self._lock:
            self._bypasses += 1
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def snapshot(self) -> StatsSnapshot:
        """Return a consistent point-in-time view of all counters."""
        with self._lock:
            return self._snapshot_locked()

    def reset(self) -> None:
        """Zero all counters (explicit operator action)."""
        with self._lock:
            self._hits = self._misses = self._bypasses = 0
            snapshot = self._snapshot_locked()
        logger.info("Cache statistics reset")
        self._notify(snapshot)

    def subscribe(self, listener: StatsListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _snapshot_locked(self) -> StatsSnapshot:
        return StatsSnapshot(
            cache_hits=self._hits,
            cache_misses=self._misses,
            estimated_cost_saved=self._hits * self.cost_per_read,
            bypasses=self._bypasses,
        )

    def _notify(self, snapshot: StatsSnapshot) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Stats listener %r failed", listener)
