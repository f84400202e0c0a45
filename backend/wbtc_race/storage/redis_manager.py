"""
Redis tier of the response cache
Holds rendered responses and snapshots as JSON under one key prefix
"""
import json
from typing import Optional
import redis.asyncio as redis
from redis.exceptions import RedisError

from wbtc_race.config.settings import Settings, settings as default_settings
from wbtc_race.core.exceptions import CacheError
import logging


logger = logging.getLogger(__name__)


class RedisManager:
    """Shared cache entries, readable by every service instance"""

    KEY_PREFIX = "wbtc_race:cache:"

    def __init__(self, settings: Optional[Settings] = None, client: Optional[redis.Redis] = None):
        self.settings = settings or default_settings
        self.redis_client = client
        self._connected = client is not None

    @classmethod
    def entry_key(cls, key: str) -> str:
        return f"{cls.KEY_PREFIX}{key}"

    async def connect(self) -> None:
        """Open the client and check the server answers"""
        self.redis_client = redis.Redis(
            host=self.settings.REDIS_HOST,
            port=self.settings.REDIS_PORT,
            password=self.settings.REDIS_PASSWORD,
            db=self.settings.REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=5
        )
        try:
            await self.redis_client.ping()
        except RedisError as e:
            await self.redis_client.aclose()
            self.redis_client = None
            raise CacheError(f"Redis at {self.settings.REDIS_HOST}:{self.settings.REDIS_PORT} unavailable: {e}")

        self._connected = True
        logger.info(f"Redis cache tier at {self.settings.REDIS_HOST}:{self.settings.REDIS_PORT}")

    async def disconnect(self) -> None:
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
        self._connected = False

    async def load(self, key: str) -> Optional[dict]:
        """Cached entry for key, or None when absent or unreadable"""
        try:
            raw = await self.redis_client.get(self.entry_key(key))
        except RedisError as e:
            raise CacheError(f"Redis read failed for {key}: {e}")

        if raw is None:
            return None
        try:
            entry = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None
        return entry if isinstance(entry, dict) else None

    async def store(self, key: str, entry: dict, ttl_seconds: int) -> None:
        """Write entry with the response TTL as its Redis expiry"""
        try:
            await self.redis_client.set(self.entry_key(key), json.dumps(entry), ex=ttl_seconds)
        except RedisError as e:
            raise CacheError(f"Redis write failed for {key}: {e}")

    @property
    def is_connected(self) -> bool:
        return self._connected
