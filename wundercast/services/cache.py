"""Redis cache for weather records."""

import json

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from wundercast.core.config import settings
from wundercast.core.logging import get_logger
from wundercast.models.weather import WeatherRecord

logger = get_logger(__name__)


class CacheService:
    """Redis-backed store of recent lookup results.

    Every operation degrades to a miss when Redis is absent or failing, so
    the weather client can always fall through to the network.
    """

    def __init__(self):
        self.redis: Redis | None = None
        self.ttl = settings.cache_ttl

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            self.redis = Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                password=settings.redis_password,
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("redis_connected", host=settings.redis_host, port=settings.redis_port)
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("redis_disconnected")

    async def get_record(self, key: str) -> WeatherRecord | None:
        """Get a cached weather record.

        Args:
            key: Cache key

        Returns:
            Cached record or None if missing, unreadable or Redis is down
        """
        if not self.redis:
            return None

        try:
            value = await self.redis.get(key)
            if value is None:
                logger.debug("cache_miss", key=key)
                return None
            logger.debug("cache_hit", key=key)
            return WeatherRecord.model_validate(json.loads(value))
        except (RedisError, json.JSONDecodeError, ValidationError) as e:
            logger.error("cache_get_error", key=key, error=str(e))
            return None

    async def set_record(self, key: str, record: WeatherRecord) -> bool:
        """Store a weather record with the configured TTL.

        Returns:
            True if stored, False otherwise
        """
        if not self.redis:
            return False

        try:
            await self.redis.setex(key, self.ttl, record.model_dump_json())
            logger.debug("cache_set", key=key, ttl=self.ttl)
            return True
        except RedisError as e:
            logger.error("cache_set_error", key=key, error=str(e))
            return False

    async def is_connected(self) -> bool:
        if not self.redis:
            return False

        try:
            await self.redis.ping()
            return True
        except RedisError:
            return False


# Global cache instance
cache = CacheService()
