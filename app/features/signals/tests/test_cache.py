"""Tests for the TTL cache."""

import asyncio

import pytest

from app.features.signals.cache import TTLCache, get_signal_cache, reset_signal_cache


class TestTTLCacheGetSet:
    """Tests for get/set and lazy expiry."""

    def test_get_missing_key_returns_none(self, cache):
        """Test that a missing key is a miss."""
        assert cache.get("holidays_BD_2025_2026") is None

    def test_get_before_ttl_returns_payload(self, cache, clock):
        """Test that a fresh entry is returned unchanged."""
        cache.set("k", ["a", "b"], ttl_minutes=180)
        clock.advance(minutes=179)

        assert cache.get("k") == ["a", "b"]

    def test_get_after_ttl_returns_none(self, cache, clock):
        """Test that an entry past its TTL is never returned."""
        cache.set("k", "v", ttl_minutes=180)
        clock.advance(minutes=181)

        assert cache.get("k") is None

    def test_expired_entry_is_deleted_on_lookup(self, cache, clock):
        """Test that lazy expiry removes the entry."""
        cache.set("k", "v", ttl_minutes=1)
        clock.advance(minutes=2)

        cache.get("k")

        assert "k" not in cache
        assert len(cache) == 0

    def test_set_overwrites_and_refreshes_expiry(self, cache, clock):
        """Test that set replaces the payload and restarts the TTL."""
        cache.set("k", "old", ttl_minutes=10)
        clock.advance(minutes=8)
        cache.set("k", "new", ttl_minutes=10)
        clock.advance(minutes=8)

        assert cache.get("k") == "new"

    def test_delete_and_clear(self, cache):
        """Test that delete and clear remove entries."""
        cache.set("a", 1, ttl_minutes=10)
        cache.set("b", 2, ttl_minutes=10)

        cache.delete("a")
        cache.delete("missing")
        assert "a" not in cache
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0


class TestTTLCacheSweep:
    """Tests for eager sweeping."""

    def test_sweep_removes_only_expired(self, cache, clock):
        """Test that sweep removes expired entries and reports the count."""
        cache.set("short-1", 1, ttl_minutes=5)
        cache.set("short-2", 2, ttl_minutes=5)
        cache.set("long", 3, ttl_minutes=60)
        clock.advance(minutes=10)

        removed = cache.sweep()

        assert removed == 2
        assert len(cache) == 1
        assert cache.get("long") == 3

    def test_sweep_on_fresh_cache_removes_nothing(self, cache):
        """Test that sweep is a no-op without expired entries."""
        cache.set("k", 1, ttl_minutes=5)
        assert cache.sweep() == 0

    @pytest.mark.asyncio
    async def test_sweeper_task_runs_periodically(self, cache, clock):
        """Test that the background sweeper removes expired entries."""
        cache.set("k", 1, ttl_minutes=1)
        clock.advance(minutes=2)

        cache.start_sweeper(0.01)
        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        await cache.stop_sweeper()

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_stop_sweeper_without_start_is_noop(self, cache):
        """Test that stopping an idle sweeper does not raise."""
        await cache.stop_sweeper()


class TestTTLCacheBound:
    """Tests for the soft entry bound."""

    def test_bound_evicts_expired_first(self, clock):
        """Test that expired entries make room before live ones are evicted."""
        cache = TTLCache(max_entries=2, clock=clock)
        cache.set("stale", 1, ttl_minutes=1)
        cache.set("live", 2, ttl_minutes=60)
        clock.advance(minutes=5)

        cache.set("new", 3, ttl_minutes=60)

        assert len(cache) == 2
        assert "stale" not in cache
        assert cache.get("live") == 2

    def test_bound_evicts_soonest_expiry(self, clock):
        """Test that the entry expiring soonest is evicted when all are live."""
        cache = TTLCache(max_entries=2, clock=clock)
        cache.set("soon", 1, ttl_minutes=10)
        cache.set("later", 2, ttl_minutes=60)

        cache.set("new", 3, ttl_minutes=30)

        assert "soon" not in cache
        assert "later" in cache
        assert "new" in cache


    def test_unbounded_cache_never_evicts(self, clock):
        """Test that a cache without a bound keeps every live entry."""
        cache = TTLCache(max_entries=None, clock=clock)
        for i in range(50):
            cache.set(f"weather_place{i}_2025-11-06", i, ttl_minutes=60)

        assert len(cache) == 50
        assert cache.get("weather_place0_2025-11-06") == 0


class TestSignalCacheSingleton:
    """Tests for the process-wide cache."""

    def test_get_signal_cache_returns_same_instance(self):
        """Test that the singleton is shared."""
        assert get_signal_cache() is get_signal_cache()

    def test_reset_signal_cache_creates_new_instance(self):
        """Test that reset drops the singleton."""
        first = get_signal_cache()
        reset_signal_cache()
        assert get_signal_cache() is not first
