"""
Tests for the namespaced TTL cache and its memory-pressure sweep.
"""

import pytest

from inbox_unsubscriber.config.settings import CacheConfig
from inbox_unsubscriber.services.cache import CacheService, MISS, TTLStore


class TestTTLStore:
    """Expiry and key ceiling for a single namespace."""

    def test_get_returns_value_before_ttl(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=10), clock)
        store.set("a", 1)
        clock.advance(59)

        assert store.get("a") == 1

    def test_entry_never_returned_once_ttl_elapsed(self, clock):
        """An entry read exactly at its TTL is already expired."""
        store = TTLStore(CacheConfig(ttl=60, max_keys=10), clock)
        store.set("a", 1)
        clock.advance(60)

        assert store.get("a") is MISS
        assert len(store) == 0

    def test_falsy_values_are_distinguishable_from_miss(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=10), clock)
        store.set("empty", [])

        assert store.get("empty") == []
        assert store.get("missing") is MISS

    def test_max_keys_evicts_oldest(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=2), clock)
        store.set("a", 1)
        store.set("b", 2)
        store.set("c", 3)

        assert store.keys() == ["b", "c"]
        assert store.get("a") is MISS

    def test_reset_key_moves_to_newest(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=2), clock)
        store.set("a", 1)
        store.set("b", 2)
        store.set("a", 10)
        store.set("c", 3)

        assert store.keys() == ["a", "c"]

    def test_per_entry_ttl_override(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=10), clock)
        store.set("short", 1, ttl=5)
        clock.advance(5)

        assert store.get("short") is MISS

    def test_purge_oldest_removes_at_least_one(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=10), clock)
        store.set("a", 1)
        store.set("b", 2)

        assert store.purge_oldest(0.25) == 1
        assert store.keys() == ["b"]

    def test_hit_and_miss_counters(self, clock):
        store = TTLStore(CacheConfig(ttl=60, max_keys=10), clock)
        store.set("a", 1)
        store.get("a")
        store.get("b")

        assert store.stats() == {"keys": 1, "hits": 1, "misses": 1}


class TestCacheService:
    """Namespace routing and helper methods."""

    def test_default_namespaces(self):
        cache = CacheService()

        assert set(cache.stores) == {"message", "search", "domain", "classification"}
        assert cache.stores["classification"].config.ttl == 14400

    def test_unknown_namespace_raises(self):
        cache = CacheService()

        with pytest.raises(KeyError, match="Unknown cache namespace"):
            cache.get("nope", "key")

    def test_namespaces_are_isolated(self):
        cache = CacheService()
        cache.set("message", "k", "message-value")

        assert cache.get("search", "k") is MISS
        assert cache.get("message", "k") == "message-value"

    def test_search_results_keyed_by_query_and_limit(self, make_message):
        cache = CacheService()
        messages = [make_message("m1")]
        cache.cache_search_results("in:inbox", 50, messages)

        assert cache.get_cached_search_results("in:inbox", 50) == messages
        assert cache.get_cached_search_results("in:inbox", 100) is MISS

    def test_clear_single_namespace(self):
        cache = CacheService()
        cache.set("message", "a", 1)
        cache.set("domain", "b", 2)
        cache.clear("message")

        assert cache.get("message", "a") is MISS
        assert cache.get("domain", "b") == 2


class TestCacheSweep:
    """Memory-pressure eviction order and termination."""

    def _filled_cache(self, readings):
        probe = iter(readings)
        cache = CacheService(memory_probe=lambda: next(probe), memory_threshold_mb=100)
        for namespace in ("search", "message", "domain", "classification"):
            for i in range(8):
                cache.set(namespace, f"{namespace}-{i}", i)
        return cache

    def test_no_eviction_below_threshold(self):
        cache = self._filled_cache([50])

        assert cache.sweep() == {}
        assert len(cache.stores["search"]) == 8

    def test_evicts_search_first_and_stops_below_target(self):
        """Stops as soon as usage drops under 80% of the threshold."""
        cache = self._filled_cache([150, 70])

        purged = cache.sweep()

        assert purged == {"search": 2}
        assert len(cache.stores["search"]) == 6
        assert len(cache.stores["message"]) == 8

    def test_walks_namespaces_in_order_under_sustained_pressure(self):
        cache = self._filled_cache([150, 120, 110, 90, 85])

        purged = cache.sweep()

        assert list(purged) == ["search", "message", "domain", "classification"]

    def test_sweep_never_raises(self):
        def broken_probe():
            raise RuntimeError("probe failed")

        cache = CacheService(memory_probe=broken_probe)

        assert cache.sweep() == {}

    def test_sweep_drops_expired_entries(self, clock):
        cache = CacheService(clock=clock, memory_probe=lambda: 0)
        cache.set("search", "q", [1])
        clock.advance(1800)

        cache.sweep()

        assert len(cache.stores["search"]) == 0

    @pytest.mark.anyio
    async def test_eviction_loop_runs_requested_iterations(self, fake_sleep):
        cache = CacheService(memory_probe=lambda: 0)

        await cache.run_eviction_loop(60, sleep=fake_sleep, iterations=3)

        assert fake_sleep.calls == [60, 60, 60]
