"""In-process LRU cache store with per-entry TTL.

Holds cached read results for the read orchestrator. Expired entries are
treated as absent and removed on read (lazy expiry); purge_expired() and
the optional sweeper task remove them proactively. When capacity (entry
count or byte budget) is exceeded, least-recently-used entries are evicted.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections import OrderedDict
from typing import Any

from cost_trimmer.domain.entities import CacheEntry
from cost_trimmer.shared.utils.clock import Clock, monotonic_ms

logger = logging.getLogger(__name__)


def estimate_size(value: Any) -> int:
    """Approximate size in bytes of a cached value (its JSON encoding)."""
    try:
        return len(json.dumps(value, default=str).encode())
    except (TypeError, ValueError):
        return len(repr(value).encode())


class InMemoryCacheStore:
    """Thread-safe LRU cache store (implements ICacheStore).

    Every operation holds the lock only for O(1) dict work, never across an
    await, so no caller waits on another caller's I/O.
    """

    def __init__(
        self,
        max_entries: int = 2000,
        max_bytes: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            max_entries: Maximum number of entries before LRU eviction.
            max_bytes: Optional byte budget over entry size estimates.
            clock: Millisecond clock; defaults to the monotonic clock.
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self._clock = clock or monotonic_ms
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._bytes = 0
        self._evictions = 0
        self._sweeper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        """Snapshot of current keys, least recently used first."""
        with self._lock:
            return list(self._entries.keys())

    def get(self, key: str) -> CacheEntry | None:
        """Return a valid entry and mark it most recently used, or None.

        An expired entry is removed and reported as absent.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache MISS: %s", key)
                return None
            if not entry.is_valid(now):
                self._remove(key)
                logger.debug("Cache EXPIRED: %s", key)
                return None
            self._entries.move_to_end(key)
            logger.debug("Cache HIT: %s", key)
            return entry

    def put(self, key: str, value: Any, ttl_ms: int) -> None:
        """Store (or replace) value under key with its own TTL.

        Args:
            key: Cache key (use cost_trimmer.infrastructure.cache.keys builders).
            value: Read result to cache.
            ttl_ms: Time-to-live in milliseconds; must be positive.
        """
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl_ms=ttl_ms,
            size=estimate_size(value),
        )
        with self._lock:
            if key in self._entries:
                self._remove(key)
            self._entries[key] = entry
            self._bytes += entry.size
            self._evict_over_capacity()
        logger.debug("Cache SET: %s (TTL: %sms)", key, ttl_ms)

    def invalidate(self, key: str) -> bool:
        """Remove one key. Returns True if it was present."""
        with self._lock:
            removed = self._remove(key)
        if removed:
            logger.debug("Cache DELETE: %s", key)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every key that starts with prefix. Returns number removed."""
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                self._remove(k)
        if doomed:
            logger.info("Cache INVALIDATE: %s (%s keys)", prefix, len(doomed))
        return len(doomed)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
            self._bytes = 0
        logger.info("Cache CLEARED: all keys deleted")

    def purge_expired(self) -> int:
        """Eagerly remove every expired entry. Returns number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not e.is_valid(now)]
            for k in expired:
                self._remove(k)
        if expired:
            logger.debug("Cache SWEEP: %s expired entries removed", len(expired))
        return len(expired)

    def stats(self) -> dict[str, int]:
        """Return entry count, byte estimate and eviction count."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "bytes": self._bytes,
                "evictions": self._evictions,
            }

    def start_sweeper(self, interval_seconds: float) -> asyncio.Task[None]:
        """Start a background task that calls purge_expired() every interval.

        Must be called from a running event loop. Idempotent while running.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(
                self._sweep_loop(interval_seconds)
            )
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancel the sweeper task if running and wait for it to finish."""
        task, self._sweeper = self._sweeper, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.purge_expired()

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._bytes -= entry.size
        return True

    def _evict_over_capacity(self) -> None:
        """Pop LRU entries until both limits hold. Caller holds the lock.

        The newest entry is never evicted, even if it alone exceeds max_bytes.
        """
        while len(self._entries) > 1 and (
            len(self._entries) > self.max_entries
            or (self.max_bytes is not None and self._bytes > self.max_bytes)
        ):
            key, entry = self._entries.popitem(last=False)
            self._bytes -= entry.size
            self._evictions += 1
            logger.debug("Cache EVICT: %s", key)
