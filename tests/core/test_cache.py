"""Tests for habitcore.core.utils.cache."""

import time

import pytest

from habitcore.core.utils.cache import ClientCache


class TestClientCache:
    def test_store_and_retrieve(self):
        cache = ClientCache()
        cache.set("routine_items:u1", [{"id": "a"}], ttl=60)
        assert cache.get("routine_items:u1") == [{"id": "a"}]

    def test_missing_key(self):
        assert ClientCache().get("nonexistent") is None

    def test_expired_entry_is_evicted_on_get(self):
        cache = ClientCache()
        cache.set("k", "v", ttl=0.1)
        time.sleep(0.15)
        assert cache.get("k") is None
        assert cache.size() == 0

    def test_expiry_with_fake_clock(self, clock):
        cache = ClientCache(clock=clock)
        cache.set("k", "v", ttl=10)
        clock.advance(10)
        assert cache.get("k") == "v"
        clock.advance(0.01)
        assert cache.get("k") is None

    def test_size_counts_unread_expired_entries(self, clock):
        cache = ClientCache(clock=clock)
        cache.set("a", 1, ttl=1)
        cache.set("b", 2, ttl=100)
        clock.advance(5)
        assert cache.size() == 2
        assert cache.get("a") is None
        assert cache.size() == 1

    def test_default_ttl(self, clock):
        cache = ClientCache(clock=clock, default_ttl=5)
        cache.set("k", "v")
        clock.advance(6)
        assert cache.get("k") is None

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            ClientCache().set("k", "v", ttl=-1)

    def test_overwrite_resets_insertion_time(self, clock):
        cache = ClientCache(clock=clock)
        cache.set("k", "old", ttl=10)
        clock.advance(8)
        cache.set("k", "new", ttl=10)
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_contains(self):
        cache = ClientCache()
        cache.set("k", "v", ttl=60)
        assert "k" in cache
        assert "other" not in cache

    def test_cached_none_is_a_hit(self, clock):
        cache = ClientCache(clock=clock)
        cache.set("daily_log:u1:2026-10-19", None, ttl=60)
        assert "daily_log:u1:2026-10-19" in cache
        assert cache.get("daily_log:u1:2026-10-19", "absent") is None
        assert cache.get("daily_log:u1:2026-10-20", "absent") == "absent"
        clock.advance(61)
        assert "daily_log:u1:2026-10-19" not in cache


class TestClear:
    def test_clear_all(self):
        cache = ClientCache()
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.clear() == 2
        assert cache.size() == 0

    def test_clear_prefix(self):
        cache = ClientCache()
        cache.set("day_color:u1:2026-10-18", "green")
        cache.set("day_color:u1:2026-10-19", "red")
        cache.set("routine_items:u1", [])
        assert cache.clear("day_color:u1:") == 2
        assert cache.get("routine_items:u1") == []
        assert cache.get("day_color:u1:2026-10-19") is None

    def test_clear_prefix_no_match(self):
        cache = ClientCache()
        cache.set("a", 1)
        assert cache.clear("zzz") == 0
        assert cache.size() == 1


class TestGetOrLoad:
    async def test_loads_once_within_ttl(self):
        cache = ClientCache()
        calls = []

        async def loader():
            calls.append(1)
            return ["item"]

        assert await cache.get_or_load("k", loader, ttl=60) == ["item"]
        assert await cache.get_or_load("k", loader, ttl=60) == ["item"]
        assert len(calls) == 1

    async def test_reloads_after_expiry(self, clock):
        cache = ClientCache(clock=clock)
        values = iter([1, 2])

        async def loader():
            return next(values)

        assert await cache.get_or_load("k", loader, ttl=1) == 1
        clock.advance(2)
        assert await cache.get_or_load("k", loader, ttl=1) == 2

    async def test_loader_failure_caches_nothing(self):
        cache = ClientCache()

        async def loader():
            raise RuntimeError("offline")

        with pytest.raises(RuntimeError):
            await cache.get_or_load("k", loader, ttl=60)
        assert cache.size() == 0

    async def test_none_result_is_cached(self):
        cache = ClientCache()
        calls = []

        async def loader():
            calls.append(1)
            return None

        assert await cache.get_or_load("daily_log:u1:2026-10-19", loader, ttl=60) is None
        assert await cache.get_or_load("daily_log:u1:2026-10-19", loader, ttl=60) is None
        assert len(calls) == 1
