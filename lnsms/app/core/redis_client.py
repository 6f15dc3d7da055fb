"""
Redis client initialization and connection management.

This module provides the Redis client used for inbound rate limiting.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from lnsms.app.core.config import settings


# Create async Redis client (connects lazily on first command)
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Used as a FastAPI dependency so tests can override it.
    """
    return redis_client


async def ping_redis(client=None) -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await (client or redis_client).ping())
    except (RedisError, OSError):
        return False
