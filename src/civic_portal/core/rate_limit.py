"""
Rate Limiting

Sliding-window rate limits backed by Redis sorted sets, with an in-memory
fallback when Redis is unavailable (single-instance only).

Applied to:
- Admin approve/reject actions
- OTP send and verify (per email)
- Quick-action links (per client IP)
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

from fastapi import HTTPException, Request, status
from redis.asyncio import Redis

from civic_portal.core.redis import get_redis

logger = logging.getLogger(__name__)

# {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """HTTP 429 raised when a caller exceeds its window."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(
    client: Redis,
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    now = time.time()
    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, now - window_seconds)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)
    results = await pipe.execute()
    return results[1] < limit


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    window_start = now - window_seconds
    hits = [ts for ts in _memory_store.get(key, []) if ts > window_start]

    if len(hits) >= limit:
        _memory_store[key] = hits
        return False

    hits.append(now)
    _memory_store[key] = hits
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Record a hit for ``key`` and report whether it is within the limit.

    Tries Redis first and falls back to process memory.

    Args:
        key: Unique key, e.g. "otp:send:user@example.com"
        limit: Maximum requests allowed in the window
        window_seconds: Window length in seconds

    Returns:
        True if the request is allowed
    """
    client = get_redis()
    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_rate_limit(key: str, limit: int, window_seconds: int) -> None:
    """Raise RateLimitExceeded if ``key`` is over its limit."""
    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
        raise RateLimitExceeded(limit, window_seconds)


def rate_limit(
    limit: int = 10,
    window_seconds: int = 60,
    key_func: Callable[[Request], str] | None = None,
):
    """
    Rate limiting decorator for endpoints that take a ``request: Request``.

    The default key is client IP + path.

    Usage:
        @router.get("/quick-action")
        @rate_limit(limit=20, window_seconds=60)
        async def quick_action(request: Request, ...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request: Request | None = kwargs.get("request")
            if request is None:
                request = next((arg for arg in args if isinstance(arg, Request)), None)

            if request is None:
                logger.warning(f"Rate limit on {func.__name__} couldn't find Request object")
                return await func(*args, **kwargs)

            if key_func:
                key = key_func(request)
            else:
                client_ip = request.client.host if request.client else "unknown"
                key = f"rate_limit:{client_ip}:{request.url.path}"

            await enforce_rate_limit(key, limit, window_seconds)
            return await func(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "RateLimitExceeded",
    "check_rate_limit",
    "enforce_rate_limit",
    "rate_limit",
]
