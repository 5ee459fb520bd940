"""Redis connection utilities."""

from functools import lru_cache

import redis.asyncio as aioredis

from api.config import get_settings


@lru_cache
def get_redis_pool() -> aioredis.ConnectionPool:
    """Get a cached async Redis connection pool."""
    settings = get_settings()
    if settings.redis_url is None:
        raise RuntimeError("REDIS_URL is not configured")
    return aioredis.ConnectionPool.from_url(
        str(settings.redis_url),
        decode_responses=True,
        max_connections=10,
    )


def get_redis_connection() -> aioredis.Redis:
    """Get an async Redis client backed by the shared pool."""
    return aioredis.Redis(connection_pool=get_redis_pool())
