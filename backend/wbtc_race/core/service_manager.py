"""
Service Manager for dependency injection and lifecycle management
"""
import logging
from typing import Optional

from wbtc_race.storage.redis_manager import RedisManager
from wbtc_race.storage.cache_manager import CacheManager
from wbtc_race.analytics.supply_aggregator import AggregatorConfig, SupplyAggregator
from wbtc_race.config.settings import Settings, settings as default_settings
from wbtc_race.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class ServiceManager:
    _instance = None

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

        # Storage
        self.redis_manager: Optional[RedisManager] = None
        self.cache_manager: Optional[CacheManager] = None

        # Aggregation
        self.aggregator: Optional[SupplyAggregator] = None

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            cls._instance = ServiceManager()
        return cls._instance

    async def initialize(self):
        """Initialize all services"""
        logger.info("Initializing services...")

        # Storage
        if self.settings.REDIS_ENABLED:
            self.redis_manager = RedisManager(self.settings)
            try:
                await self.redis_manager.connect()
            except CacheError as e:
                logger.warning(f"Redis unavailable, using memory cache only: {e.message}")
                self.redis_manager = None

        self.cache_manager = CacheManager(
            self.redis_manager,
            default_ttl=self.settings.CACHE_TTL_SECONDS,
            max_entries=self.settings.CACHE_MAX_ENTRIES
        )

        # Aggregation
        self.aggregator = SupplyAggregator(AggregatorConfig.from_settings(self.settings))
        await self.aggregator.connect()

        logger.info("All services initialized successfully")

    async def cleanup(self):
        """Cleanup all services"""
        logger.info("Cleaning up services...")

        if self.aggregator:
            await self.aggregator.disconnect()

        if self.redis_manager:
            await self.redis_manager.disconnect()

        logger.info("Cleanup completed")
