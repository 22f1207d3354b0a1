"""
Redis client for notification fan-out.
Separated from business logic so the service only sees a dispatcher.
"""

from typing import Optional

import redis.asyncio as redis

from registrar.core.config import Settings
from registrar.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Process-wide async Redis client with connection pooling."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls, settings: Settings) -> redis.Redis:
        """Get or create the client for settings.REDIS_URL."""
        if cls._instance is None:
            cls._instance = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            logger.info("redis_client_created", url=settings.REDIS_URL)
        return cls._instance

    @classmethod
    async def close(cls) -> None:
        """Close Redis connection."""
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None


# Convenience function
def get_redis(settings: Settings) -> redis.Redis:
    return RedisClient.get_client(settings)
