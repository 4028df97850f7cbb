"""
Unit tests for the rate limiting middleware.

Test scenarios:
- Requests under the limit are allowed
- Requests over the limit are blocked with 429
- Different IP addresses have separate counters
- Redis failures fail open
- Only POST to the login and submission paths is limited
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as aioredis
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from helpdesk.core.config import settings
from helpdesk.middleware import rate_limiter as rate_limiter_module
from helpdesk.middleware.rate_limiter import (
    LOGIN_PATH,
    PUBLIC_SUBMIT_PATH,
    RATE_LIMITS,
    RateLimitConfig,
    RateLimiter,
    RateLimitMiddleware,
    RateLimitResult,
)


CONFIG = RateLimitConfig(requests_per_window=5, window_seconds=60)


def _redis_returning(count):
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=[count, True])
    redis_client = MagicMock()
    redis_client.pipeline = MagicMock(return_value=pipeline)
    return redis_client, pipeline


class TestRateLimitConfig:

    def test_limits_come_from_settings(self):
        assert RATE_LIMITS[LOGIN_PATH].requests_per_window == settings.LOGIN_RATE_LIMIT
        assert RATE_LIMITS[PUBLIC_SUBMIT_PATH].window_seconds == settings.SUBMIT_RATE_WINDOW_SECONDS


class TestRateLimiter:

    @pytest.mark.asyncio
    async def test_first_request_allowed(self):
        redis_client, _ = _redis_returning(1)
        limiter = RateLimiter(redis_client)

        result = await limiter.check_rate_limit("192.168.1.1", LOGIN_PATH, CONFIG)

        assert result.allowed is True
        assert result.remaining == 4

    @pytest.mark.asyncio
    async def test_at_limit_still_allowed(self):
        redis_client, _ = _redis_returning(5)
        limiter = RateLimiter(redis_client)

        result = await limiter.check_rate_limit("192.168.1.1", LOGIN_PATH, CONFIG)

        assert result.allowed is True
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_over_limit_denied(self):
        redis_client, _ = _redis_returning(6)
        limiter = RateLimiter(redis_client)

        result = await limiter.check_rate_limit("192.168.1.1", LOGIN_PATH, CONFIG)

        assert result.allowed is False
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_window_set_only_on_new_key(self):
        redis_client, pipeline = _redis_returning(1)
        limiter = RateLimiter(redis_client)

        await limiter.check_rate_limit("192.168.1.1", LOGIN_PATH, CONFIG)

        pipeline.expire.assert_called_once()
        assert pipeline.expire.call_args.kwargs == {"nx": True}

    @pytest.mark.asyncio
    async def test_different_ips_separate_keys(self):
        redis_client, pipeline = _redis_returning(1)
        limiter = RateLimiter(redis_client)

        await limiter.check_rate_limit("192.168.1.1", LOGIN_PATH, CONFIG)
        await limiter.check_rate_limit("192.168.1.2", LOGIN_PATH, CONFIG)

        keys = [call.args[0] for call in pipeline.incr.call_args_list]
        assert keys[0] != keys[1]
        assert keys[0].endswith("192.168.1.1")

    @pytest.mark.asyncio
    async def test_redis_failure_fails_open(self):
        pipeline = MagicMock()
        pipeline.execute = AsyncMock(side_effect=aioredis.ConnectionError("down"))
        redis_client = MagicMock()
        redis_client.pipeline = MagicMock(return_value=pipeline)
        limiter = RateLimiter(redis_client)

        result = await limiter.check_rate_limit("192.168.1.1", LOGIN_PATH, CONFIG)

        assert result.allowed is True


class TestRateLimitMiddleware:

    @pytest.fixture
    def limited_app(self, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)

        app = FastAPI()
        app.add_middleware(RateLimitMiddleware)

        @app.post(LOGIN_PATH)
        async def login():
            return {"ok": True}

        @app.get(LOGIN_PATH)
        async def login_page():
            return {"ok": True}

        @app.post("/api/admin/tickets")
        async def other():
            return {"ok": True}

        return app

    def _use_limiter(self, monkeypatch, allowed):
        limiter = MagicMock()
        limiter.check_rate_limit = AsyncMock(
            return_value=RateLimitResult(
                allowed=allowed, remaining=0 if not allowed else 3, reset_after=42, limit=5
            )
        )

        async def fake_get_rate_limiter():
            return limiter

        monkeypatch.setattr(rate_limiter_module, "get_rate_limiter", fake_get_rate_limiter)
        return limiter

    @pytest.mark.asyncio
    async def test_blocked_request_gets_429(self, limited_app, monkeypatch):
        self._use_limiter(monkeypatch, allowed=False)

        async with AsyncClient(transport=ASGITransport(app=limited_app), base_url="http://test") as ac:
            response = await ac.post(LOGIN_PATH)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.json()["error"] == "RateLimitExceeded"

    @pytest.mark.asyncio
    async def test_allowed_request_carries_headers(self, limited_app, monkeypatch):
        self._use_limiter(monkeypatch, allowed=True)

        async with AsyncClient(transport=ASGITransport(app=limited_app), base_url="http://test") as ac:
            response = await ac.post(LOGIN_PATH)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "3"

    @pytest.mark.asyncio
    async def test_unlimited_paths_and_methods_skip_limiter(self, limited_app, monkeypatch):
        limiter = self._use_limiter(monkeypatch, allowed=False)

        async with AsyncClient(transport=ASGITransport(app=limited_app), base_url="http://test") as ac:
            assert (await ac.get(LOGIN_PATH)).status_code == 200
            assert (await ac.post("/api/admin/tickets")).status_code == 200

        limiter.check_rate_limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_by_setting(self, limited_app, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
        limiter = self._use_limiter(monkeypatch, allowed=False)

        async with AsyncClient(transport=ASGITransport(app=limited_app), base_url="http://test") as ac:
            assert (await ac.post(LOGIN_PATH)).status_code == 200

        limiter.check_rate_limit.assert_not_called()
