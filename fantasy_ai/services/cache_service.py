"""
Cache Service for storing and retrieving upstream responses.

Backs the Sleeper player catalogue and the AI proxy's response cache.
Uses Redis when reachable and falls back to an in-process TTL cache.
"""

import json
import hashlib
import fnmatch
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
import logging

import redis.asyncio as redis

from fantasy_ai.core.config import settings

logger = logging.getLogger(__name__)


REDIS_RETRY_SECONDS = 30
MEMORY_CACHE_MAX_ENTRIES = 5000


class InMemoryCache:
    """
    Simple in-memory cache implementation.
    Fallback when Redis is not available. Expired entries are swept on every
    write, and the oldest entries are evicted once max_entries is reached.
    """

    def __init__(self, max_entries: int = MEMORY_CACHE_MAX_ENTRIES):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self.max_entries = max_entries

    def _cleanup_expired(self) -> int:
        now = datetime.utcnow()
        expired = [key for key, entry in self._cache.items() if entry["expires_at"] < now]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def _evict_oldest(self):
        overflow = len(self._cache) - self.max_entries + 1
        if overflow <= 0:
            return
        oldest = sorted(self._cache, key=lambda key: self._cache[key]["created_at"])[:overflow]
        for key in oldest:
            del self._cache[key]
        logger.debug(f"Evicted {len(oldest)} in-memory cache entries")

    async def get(self, key: str) -> Optional[str]:
        """Get value from cache"""
        if key not in self._cache:
            return None

        entry = self._cache[key]
        if entry["expires_at"] < datetime.utcnow():
            del self._cache[key]
            return None

        return entry["value"]

    async def set(self, key: str, value: str, expire_seconds: int = 300):
        """Set value in cache with expiration"""
        self._cleanup_expired()
        if key not in self._cache:
            self._evict_oldest()

        expires_at = datetime.utcnow() + timedelta(seconds=expire_seconds)
        self._cache[key] = {
            "value": value,
            "expires_at": expires_at,
            "created_at": datetime.utcnow(),
        }

    async def delete(self, key: str):
        """Delete key from cache"""
        self._cache.pop(key, None)

    async def delete_pattern(self, pattern: str) -> int:
        keys = [key for key in self._cache if fnmatch.fnmatchcase(key, pattern)]
        for key in keys:
            del self._cache[key]
        return len(keys)

    async def clear(self):
        """Clear all cache entries"""
        self._cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        now = datetime.utcnow()
        active_entries = sum(1 for entry in self._cache.values() if entry["expires_at"] > now)

        return {
            "total_entries": len(self._cache),
            "active_entries": active_entries,
            "expired_entries": len(self._cache) - active_entries,
            "cache_type": "in_memory",
        }


class CacheService:
    """
    Main cache service that can use Redis or fall back to in-memory caching.
    """

    def __init__(self, redis_url: Optional[str] = None, enabled: Optional[bool] = None):
        self._redis_client = None
        self._memory_cache = InMemoryCache()
        self._redis_available = False
        self._redis_retry_at: Optional[datetime] = None
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled
        if self.enabled:
            self._initialize_redis(redis_url or settings.REDIS_URL)

    def _initialize_redis(self, redis_url: str):
        """Try to initialize Redis connection"""
        try:
            self._redis_client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            self._redis_available = True
        except Exception as e:
            logger.warning(f"Failed to initialize Redis, using in-memory cache: {e}")
            self._redis_available = False

    async def _test_redis_connection(self, force: bool = False) -> bool:
        """
        Test if Redis is available. After a failed ping Redis is skipped for
        REDIS_RETRY_SECONDS, unless force is set.
        """
        if not self._redis_client:
            return False

        if (
            not force
            and not self._redis_available
            and self._redis_retry_at is not None
            and datetime.utcnow() < self._redis_retry_at
        ):
            return False

        try:
            await self._redis_client.ping()
        except Exception as e:
            if self._redis_available:
                logger.warning(f"Redis connection test failed, using in-memory cache: {e}")
            self._redis_available = False
            self._redis_retry_at = datetime.utcnow() + timedelta(seconds=REDIS_RETRY_SECONDS)
            return False

        if not self._redis_available:
            logger.info("Redis connection restored")
        self._redis_available = True
        self._redis_retry_at = None
        return True

    @staticmethod
    def generate_key(prefix: str, payload: Any) -> str:
        """Generate a consistent cache key from a JSON-serialisable payload"""
        serialized = json.dumps(payload, sort_keys=True, default=str)
        digest = hashlib.sha256(serialized.encode()).hexdigest()[:16]
        return f"{prefix}:{digest}"

    async def get(self, key: str) -> Optional[Any]:
        """Get cached data"""
        if not self.enabled:
            return None

        try:
            if await self._test_redis_connection():
                try:
                    cached_data = await self._redis_client.get(key)
                    if cached_data:
                        return json.loads(cached_data)
                    return None
                except Exception as e:
                    logger.warning(f"Redis get failed, falling back to memory: {e}")

            cached_data = await self._memory_cache.get(key)
            if cached_data:
                return json.loads(cached_data)

            return None

        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    async def set(self, key: str, data: Any, expire_seconds: int = 300):
        """Set cached data with expiration"""
        if not self.enabled:
            return

        try:
            serialized_data = json.dumps(data, default=str)

            if await self._test_redis_connection():
                try:
                    await self._redis_client.setex(key, expire_seconds, serialized_data)
                    return
                except Exception as e:
                    logger.warning(f"Redis set failed, falling back to memory: {e}")

            await self._memory_cache.set(key, serialized_data, expire_seconds)

        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")

    async def delete(self, key: str):
        """Delete cached data"""
        try:
            if await self._test_redis_connection():
                try:
                    await self._redis_client.delete(key)
                except Exception as e:
                    logger.warning(f"Redis delete failed: {e}")

            await self._memory_cache.delete(key)

        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")

    async def clear_pattern(self, pattern: str) -> int:
        """Clear all keys matching a glob pattern"""
        cleared = 0
        try:
            if await self._test_redis_connection():
                try:
                    keys = [key async for key in self._redis_client.scan_iter(match=pattern)]
                    if keys:
                        cleared += await self._redis_client.delete(*keys)
                        logger.info(f"Cleared {len(keys)} Redis keys matching pattern: {pattern}")
                except Exception as e:
                    logger.warning(f"Redis pattern clear failed: {e}")

            cleared += await self._memory_cache.delete_pattern(pattern)

        except Exception as e:
            logger.error(f"Cache pattern clear error for pattern {pattern}: {e}")
        return cleared

    async def is_redis_healthy(self) -> bool:
        return await self._test_redis_connection(force=True)

    async def get_stats(self) -> Dict[str, Any]:
        redis_connected = await self._test_redis_connection()
        stats = {
            "enabled": self.enabled,
            "redis_connected": redis_connected,
            "memory": self._memory_cache.get_stats(),
        }
        if redis_connected:
            try:
                stats["redis_keys"] = await self._redis_client.dbsize()
            except Exception as e:
                logger.warning(f"Redis stats failed: {e}")
        return stats

    async def close(self):
        if self._redis_client is not None:
            try:
                await self._redis_client.aclose()
            except Exception as e:
                logger.warning(f"Error closing Redis client: {e}")


# Global cache service instance
cache_service = CacheService()
