"""
Cache Manager - Response cache keyed by request URL
Bounded in-memory tier with an optional Redis tier
"""
from typing import Optional
from datetime import datetime, timedelta, timezone
import hashlib

from wbtc_race.core.exceptions import CacheError
from wbtc_race.storage.redis_manager import RedisManager
import logging


logger = logging.getLogger(__name__)

# Redis hits are kept in memory this long at most
PROMOTED_TTL_SECONDS = 60


class CacheManager:
    """
    Two-tier caching system: Memory (fast, bounded) + Redis (shared, optional)

    The memory tier holds at most max_entries entries. Expired entries are
    purged on every write; when still full, the entry closest to expiry is
    evicted.
    """

    def __init__(
        self,
        redis_manager: Optional[RedisManager] = None,
        default_ttl: int = 3600,
        max_entries: int = 256
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.redis_manager = redis_manager
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._memory_cache: dict = {}
        self._cache_stats = {
            'hits': 0,
            'misses': 0,
            'memory_hits': 0,
            'redis_hits': 0,
            'evictions': 0,
            'redis_errors': 0
        }

    @staticmethod
    def cache_key(url: str) -> str:
        """Generate cache key from a request URL"""
        return hashlib.md5(url.encode()).hexdigest()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @property
    def _redis_ready(self) -> bool:
        return bool(self.redis_manager and self.redis_manager.is_connected)

    async def get(self, key: str) -> Optional[dict]:
        """Get from cache (memory first, then Redis)"""
        entry = self._memory_cache.get(key)
        if entry:
            if entry['expires_at'] > self._now():
                self._cache_stats['hits'] += 1
                self._cache_stats['memory_hits'] += 1
                return entry['value']
            del self._memory_cache[key]

        if self._redis_ready:
            try:
                value = await self.redis_manager.load(key)
            except CacheError as e:
                self._redis_failed(e)
                value = None

            if value is not None:
                self._cache_stats['hits'] += 1
                self._cache_stats['redis_hits'] += 1
                ttl = min(PROMOTED_TTL_SECONDS, self.default_ttl)
                self._remember(key, value, self._now() + timedelta(seconds=ttl))
                return value

        self._cache_stats['misses'] += 1
        return None

    async def set(self, key: str, value: dict, ttl_seconds: Optional[int] = None) -> None:
        """Cache value in memory and, when connected, in Redis"""
        ttl_seconds = ttl_seconds or self.default_ttl

        self._purge_expired()
        self._remember(key, value, self._now() + timedelta(seconds=ttl_seconds))

        if self._redis_ready:
            try:
                await self.redis_manager.store(key, value, ttl_seconds)
            except CacheError as e:
                self._redis_failed(e)

    def _remember(self, key: str, value: dict, expires_at: datetime) -> None:
        if key not in self._memory_cache and len(self._memory_cache) >= self.max_entries:
            # min() keeps insertion order on ties
            victim = min(self._memory_cache, key=lambda k: self._memory_cache[k]['expires_at'])
            del self._memory_cache[victim]
            self._cache_stats['evictions'] += 1

        self._memory_cache[key] = {'value': value, 'expires_at': expires_at}

    def _purge_expired(self) -> None:
        now = self._now()
        expired = [k for k, entry in self._memory_cache.items() if entry['expires_at'] <= now]
        for k in expired:
            del self._memory_cache[k]

    def _redis_failed(self, error: CacheError) -> None:
        self._cache_stats['redis_errors'] += 1
        logger.warning(f"Redis cache tier error, serving from memory: {error.message}")

    def get_stats(self) -> dict:
        """Get cache statistics"""
        total_requests = self._cache_stats['hits'] + self._cache_stats['misses']
        hit_rate = self._cache_stats['hits'] / total_requests if total_requests > 0 else 0

        return {
            **self._cache_stats,
            'hit_rate': round(hit_rate, 3),
            'memory_cache_size': len(self._memory_cache),
            'max_entries': self.max_entries
        }
