"""Tests for InMemoryCacheStore (TTL expiry, LRU eviction, invalidation, sweeper)."""

import asyncio

import pytest

from cost_trimmer.infrastructure.cache.memory_cache import InMemoryCacheStore, estimate_size


class TestTTL:
    """Entries expire lazily at stored_at + ttl."""

    def test_hit_before_expiry_miss_at_expiry(self, cache_store, clock) -> None:
        cache_store.put("k", {"v": 1}, ttl_ms=1000)
        clock.advance(999)
        assert cache_store.get("k").value == {"v": 1}
        clock.advance(1)
        assert cache_store.get("k") is None
        assert "k" not in cache_store

    def test_each_entry_has_its_own_ttl(self, cache_store, clock) -> None:
        cache_store.put("short", 1, ttl_ms=10)
        cache_store.put("long", 2, ttl_ms=10_000)
        clock.advance(50)
        assert cache_store.get("short") is None
        assert cache_store.get("long").value == 2

    def test_put_replaces_and_restarts_ttl(self, cache_store, clock) -> None:
        cache_store.put("k", "old", ttl_ms=100)
        clock.advance(90)
        cache_store.put("k", "new", ttl_ms=100)
        clock.advance(90)
        assert cache_store.get("k").value == "new"
        assert len(cache_store) == 1

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_rejected(self, cache_store, ttl: int) -> None:
        with pytest.raises(ValueError):
            cache_store.put("k", 1, ttl_ms=ttl)

    def test_purge_expired(self, cache_store, clock) -> None:
        cache_store.put("a", 1, ttl_ms=10)
        cache_store.put("b", 2, ttl_ms=10)
        cache_store.put("c", 3, ttl_ms=1000)
        clock.advance(10)
        assert cache_store.purge_expired() == 2
        assert cache_store.keys() == ["c"]


class TestEviction:
    """Least-recently-used entries go first when capacity is exceeded."""

    def test_lru_evicted_at_max_entries(self, clock) -> None:
        store = InMemoryCacheStore(max_entries=2, clock=clock)
        store.put("a", 1, ttl_ms=1000)
        store.put("b", 2, ttl_ms=1000)
        store.get("a")
        store.put("c", 3, ttl_ms=1000)
        assert store.keys() == ["a", "c"]
        assert store.stats()["evictions"] == 1

    def test_byte_budget(self, clock) -> None:
        value = "x" * 100
        size = estimate_size(value)
        store = InMemoryCacheStore(max_entries=100, max_bytes=size * 2, clock=clock)
        for key in ("a", "b", "c"):
            store.put(key, value, ttl_ms=1000)
        assert store.keys() == ["b", "c"]
        assert store.stats()["bytes"] == size * 2

    def test_newest_entry_kept_even_when_oversized(self, clock) -> None:
        store = InMemoryCacheStore(max_entries=10, max_bytes=5, clock=clock)
        store.put("big", "x" * 100, ttl_ms=1000)
        assert "big" in store

    def test_max_entries_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            InMemoryCacheStore(max_entries=0)


class TestInvalidation:
    def test_invalidate_single_key(self, cache_store) -> None:
        cache_store.put("k", 1, ttl_ms=1000)
        assert cache_store.invalidate("k") is True
        assert cache_store.invalidate("k") is False

    def test_invalidate_prefix(self, cache_store) -> None:
        cache_store.put("doc:products/p1:aaa", 1, ttl_ms=1000)
        cache_store.put("doc:products/p1:bbb", 2, ttl_ms=1000)
        cache_store.put("doc:products/p2:aaa", 3, ttl_ms=1000)
        assert cache_store.invalidate_prefix("doc:products/p1:") == 2
        assert cache_store.keys() == ["doc:products/p2:aaa"]

    def test_clear(self, cache_store) -> None:
        cache_store.put("a", 1, ttl_ms=1000)
        cache_store.clear()
        assert len(cache_store) == 0
        assert cache_store.stats()["bytes"] == 0


class TestSweeper:
    """Background task removes expired entries without a read."""

    @pytest.mark.asyncio
    async def test_sweeper_purges_expired_entries(self, cache_store, clock) -> None:
        cache_store.put("a", 1, ttl_ms=10)
        clock.advance(10)
        task = cache_store.start_sweeper(0.01)
        assert cache_store.start_sweeper(0.01) is task
        try:
            for _ in range(50):
                if len(cache_store) == 0:
                    break
                await asyncio.sleep(0.01)
            assert len(cache_store) == 0
        finally:
            await cache_store.stop_sweeper()
        assert task.done()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, cache_store) -> None:
        await cache_store.stop_sweeper()

    def test_interval_must_be_positive(self, cache_store) -> None:
        with pytest.raises(ValueError):
            cache_store.start_sweeper(0)
