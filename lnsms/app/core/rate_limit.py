"""
Fixed-window rate limiter backed by Redis.

Each client IP gets ``rate_limit_requests`` calls per
``rate_limit_window_seconds`` across the public endpoints.
"""

import logging

from fastapi import Depends, Request
from redis.exceptions import RedisError

from lnsms.app.core.config import settings
from lnsms.app.core.exceptions import RateLimitExceededError
from lnsms.app.core.redis_client import get_redis

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:"


async def enforce_rate_limit(request: Request, redis=Depends(get_redis)) -> None:
    """
    FastAPI dependency enforcing the per-client request budget.

    Raises:
        RateLimitExceededError: 429 when the window budget is spent
    """
    ip = request.client.host if request.client else "unknown"
    key = f"{RATE_LIMIT_PREFIX}{ip}"

    try:
        count = await redis.incr(key)
        if count == 1:
            await redis.expire(key, settings.rate_limit_window_seconds)
        if count <= settings.rate_limit_requests:
            return
        ttl = await redis.ttl(key)
    except (RedisError, OSError) as e:
        # Fail open
        logger.warning("Rate limiter unavailable, allowing request: %s", e)
        return

    retry_after = ttl if ttl and ttl > 0 else settings.rate_limit_window_seconds
    raise RateLimitExceededError(retry_after=retry_after)
