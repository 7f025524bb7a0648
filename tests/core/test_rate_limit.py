"""
Unit tests for sliding-window rate limiting.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from civic_portal.core.rate_limit import (
    RateLimitExceeded,
    _check_rate_limit_memory,
    check_rate_limit,
    enforce_rate_limit,
)


class TestMemoryRateLimit:
    def test_allows_up_to_limit(self):
        results = [_check_rate_limit_memory("otp:send:a@x.com", 5, 900) for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_keys_are_independent(self):
        for _ in range(5):
            _check_rate_limit_memory("otp:send:a@x.com", 5, 900)

        assert _check_rate_limit_memory("otp:send:a@x.com", 5, 900) is False
        assert _check_rate_limit_memory("otp:send:b@x.com", 5, 900) is True


class TestCheckRateLimit:
    @pytest.mark.asyncio
    async def test_uses_memory_without_redis(self):
        with patch("civic_portal.core.rate_limit.get_redis", return_value=None):
            assert await check_rate_limit("k", 1, 60) is True
            assert await check_rate_limit("k", 1, 60) is False

    @pytest.mark.asyncio
    async def test_uses_redis_when_available(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[0, 3, 1, True])
        client = MagicMock()
        client.pipeline.return_value = pipe

        with patch("civic_portal.core.rate_limit.get_redis", return_value=client):
            assert await check_rate_limit("k", 5, 60) is True

        pipe.zcard.assert_called_once_with("k")

    @pytest.mark.asyncio
    async def test_falls_back_to_memory_on_redis_error(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=ConnectionError("redis down"))
        client = MagicMock()
        client.pipeline.return_value = pipe

        with patch("civic_portal.core.rate_limit.get_redis", return_value=client):
            assert await check_rate_limit("k", 1, 60) is True
            assert await check_rate_limit("k", 1, 60) is False

    @pytest.mark.asyncio
    async def test_enforce_raises_429(self):
        with patch("civic_portal.core.rate_limit.get_redis", return_value=None):
            await enforce_rate_limit("k", 1, 60)
            with pytest.raises(RateLimitExceeded) as exc_info:
                await enforce_rate_limit("k", 1, 60)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers["Retry-After"] == "60"
