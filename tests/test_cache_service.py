"""
Tests for the cache service and its in-memory fallback
"""
import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from fantasy_ai.services.cache_service import CacheService, InMemoryCache


class TestInMemoryCache:
    def test_expired_entries_are_dropped(self):
        cache = InMemoryCache()
        asyncio.run(cache.set("key", "value", expire_seconds=60))
        cache._cache["key"]["expires_at"] = datetime.utcnow() - timedelta(seconds=1)

        assert asyncio.run(cache.get("key")) is None
        assert "key" not in cache._cache

    def test_stats(self):
        cache = InMemoryCache()
        asyncio.run(cache.set("a", "1"))
        asyncio.run(cache.set("b", "2"))
        cache._cache["b"]["expires_at"] = datetime.utcnow() - timedelta(seconds=1)

        stats = cache.get_stats()
        assert stats["total_entries"] == 2
        assert stats["active_entries"] == 1
        assert stats["cache_type"] == "in_memory"

    def test_set_sweeps_expired_entries(self):
        cache = InMemoryCache()
        for i in range(1000):
            asyncio.run(cache.set(f"ai_response:{i}", "old"))
        for entry in cache._cache.values():
            entry["expires_at"] = datetime.utcnow() - timedelta(seconds=1)

        asyncio.run(cache.set("ai_response:fresh", "new"))

        assert list(cache._cache) == ["ai_response:fresh"]

    def test_oldest_entries_evicted_at_capacity(self):
        cache = InMemoryCache(max_entries=3)
        for key in ("a", "b", "c"):
            asyncio.run(cache.set(key, key))
        cache._cache["a"]["created_at"] = datetime.utcnow() - timedelta(minutes=5)

        asyncio.run(cache.set("d", "d"))
        asyncio.run(cache.set("b", "updated"))

        assert sorted(cache._cache) == ["b", "c", "d"]
        assert asyncio.run(cache.get("b")) == "updated"


class TestCacheService:
    def test_round_trip(self, memory_cache):
        asyncio.run(memory_cache.set("ai_response:abc", {"content": "hi", "usage": {"totalTokens": 3}}))

        assert asyncio.run(memory_cache.get("ai_response:abc")) == {"content": "hi", "usage": {"totalTokens": 3}}

    def test_disabled_cache_stores_nothing(self):
        cache = CacheService(enabled=False)
        asyncio.run(cache.set("key", {"a": 1}))

        assert asyncio.run(cache.get("key")) is None
        assert asyncio.run(cache.is_redis_healthy()) is False

    def test_delete_and_clear_pattern(self, memory_cache):
        asyncio.run(memory_cache.set("ai_response:1", "a"))
        asyncio.run(memory_cache.set("ai_response:2", "b"))
        asyncio.run(memory_cache.set("sleeper:players:nfl", {}))

        asyncio.run(memory_cache.delete("ai_response:1"))
        assert asyncio.run(memory_cache.get("ai_response:1")) is None

        assert asyncio.run(memory_cache.clear_pattern("ai_response:*")) == 1
        assert asyncio.run(memory_cache.get("ai_response:2")) is None

    def test_generate_key_is_stable(self):
        first = CacheService.generate_key("ai_response", {"b": 2, "a": 1})
        second = CacheService.generate_key("ai_response", {"a": 1, "b": 2})

        assert first == second
        assert first.startswith("ai_response:")
        assert first != CacheService.generate_key("ai_response", {"a": 1, "b": 3})

    def test_stats_report_memory_backend(self, memory_cache):
        asyncio.run(memory_cache.set("key", "value"))
        stats = asyncio.run(memory_cache.get_stats())

        assert stats["enabled"] is True
        assert stats["redis_connected"] is False
        assert stats["memory"]["active_entries"] == 1

    def test_redis_retried_after_failed_ping(self):
        cache = CacheService(enabled=True)
        cache._redis_client = MagicMock()
        cache._redis_client.ping = AsyncMock(side_effect=[ConnectionError("redis down"), True, True])
        cache._redis_client.get = AsyncMock(return_value='{"cached": true}')

        assert asyncio.run(cache.get("key")) is None
        assert cache._redis_client.ping.await_count == 1

        cache._redis_retry_at = datetime.utcnow() - timedelta(seconds=1)
        assert asyncio.run(cache.get("key")) == {"cached": True}
        assert cache._redis_available is True

    def test_health_probe_ignores_retry_interval(self):
        cache = CacheService(enabled=True)
        cache._redis_client = MagicMock()
        cache._redis_client.ping = AsyncMock(side_effect=[ConnectionError("redis down"), True])

        assert asyncio.run(cache.is_redis_healthy()) is False
        assert asyncio.run(cache.is_redis_healthy()) is True
