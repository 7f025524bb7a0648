"""
Redis Connection

Process-wide async Redis client used for rate limiting.
"""

from redis.asyncio import Redis, from_url

from civic_portal.core.config import settings

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect to Redis on application startup."""
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await redis_client.ping()
    return redis_client


def get_redis() -> Redis | None:
    """
    Return the shared client, or None when Redis was never connected.

    Callers must handle the None case; Redis is optional outside production.
    """
    return redis_client


async def close_redis() -> None:
    """Close the Redis connection on shutdown."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
