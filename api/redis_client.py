"""
Redis client configuration for request throttling
"""
import logging
import redis.asyncio as redis
from typing import Optional

from config.waitlist_config import WaitlistConfig, load_config

logger = logging.getLogger(__name__)

class RedisClient:
    """Singleton Redis client for the throttle store"""

    _instance: Optional[redis.Redis] = None

    @classmethod
    async def get_client(cls, config: Optional[WaitlistConfig] = None) -> redis.Redis:
        """Get or create Redis client instance"""
        if cls._instance is None:
            config = config or load_config()
            url = config.get_redis_url()

            cls._instance = redis.Redis.from_url(
                url,
                decode_responses=True,  # Automatically decode bytes to strings
                socket_connect_timeout=2,
                socket_timeout=2,
            )

            # Test connection
            try:
                await cls._instance.ping()
                logger.info(f"Redis connected: {cls._instance.connection_pool.connection_kwargs.get('host')}")
            except redis.ConnectionError as e:
                logger.error(f"Redis connection failed: {e}")
                cls._instance = None
                raise

        return cls._instance

    @classmethod
    async def close(cls):
        """Close Redis connection"""
        if cls._instance:
            await cls._instance.aclose()
            cls._instance = None
            logger.info("Redis connection closed")
