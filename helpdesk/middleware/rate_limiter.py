"""
Rate limiting middleware for the login and public submission endpoints.

WHAT: Per-IP request budgets for the two endpoints anonymous callers can hit.

WHY: Account lockout stops guessing against one account; this limit slows
guessing across many accounts from one address, and keeps the anonymous
ticket form from being flooded.

HOW: Uses a Redis fixed window:
1. Each request increments a counter for IP+endpoint combination
2. Counter key expires after the window duration
3. If counter exceeds limit, return 429 Too Many Requests

Design decisions:
- Fail-open: If Redis is unavailable, allow requests (prevents self-DOS)
- Limits come from settings; tuning them is a deployment concern
"""

from dataclasses import dataclass
from typing import Dict, Optional
import logging

import redis.asyncio as aioredis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from helpdesk.core.config import settings
from helpdesk.core.exceptions import RateLimitExceeded
from helpdesk.middleware.request_context import get_client_ip


logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True)
class RateLimitConfig:
    """
    Rate limit parameters for one endpoint.
    """

    requests_per_window: int
    window_seconds: int
    key_prefix: str = "ratelimit"


LOGIN_PATH = "/api/auth/login"
PUBLIC_SUBMIT_PATH = "/api/public/tickets"

# Only POST requests to these paths are limited
RATE_LIMITS: Dict[str, RateLimitConfig] = {
    LOGIN_PATH: RateLimitConfig(
        requests_per_window=settings.LOGIN_RATE_LIMIT,
        window_seconds=settings.LOGIN_RATE_WINDOW_SECONDS,
        key_prefix="ratelimit:login",
    ),
    PUBLIC_SUBMIT_PATH: RateLimitConfig(
        requests_per_window=settings.SUBMIT_RATE_LIMIT,
        window_seconds=settings.SUBMIT_RATE_WINDOW_SECONDS,
        key_prefix="ratelimit:submit",
    ),
}


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.
    """

    allowed: bool
    remaining: int
    reset_after: int
    limit: int


# ============================================================================
# Rate Limiter Service
# ============================================================================


class RateLimiter:
    """
    Rate limiter service using Redis INCR and EXPIRE.

    HOW: Uses a Redis pipeline:
    1. INCR key (increments counter, creates with value 1 if new)
    2. EXPIRE key window_seconds NX (sets TTL only if key is new)
    3. Compare counter to limit
    """

    def __init__(self, redis_client: aioredis.Redis):
        self._redis = redis_client

    @staticmethod
    def _build_key(config: RateLimitConfig, identifier: str, endpoint: str) -> str:
        normalized_endpoint = endpoint.strip("/").replace("/", ":")
        return f"{config.key_prefix}:{normalized_endpoint}:{identifier}"

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: str,
        config: RateLimitConfig,
    ) -> RateLimitResult:
        """
        Count one request and check it against the limit.

        Args:
            identifier: Client identifier (IP address)
            endpoint: API endpoint being accessed
            config: Limit for this endpoint

        Returns:
            RateLimitResult with allowed status and metadata
        """
        key = self._build_key(config, identifier, endpoint)

        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, config.window_seconds, nx=True)
            results = await pipe.execute()
            current_count = results[0]
        except aioredis.RedisError as e:
            # Fail-open: a Redis outage must not lock every user out
            logger.error(
                f"Rate limit Redis error (allowing request): {e}",
                extra={"identifier": identifier, "endpoint": endpoint},
            )
            return RateLimitResult(
                allowed=True,
                remaining=-1,
                reset_after=config.window_seconds,
                limit=config.requests_per_window,
            )

        return RateLimitResult(
            allowed=current_count <= config.requests_per_window,
            remaining=max(0, config.requests_per_window - current_count),
            reset_after=config.window_seconds,
            limit=config.requests_per_window,
        )


_rate_limiter: Optional[RateLimiter] = None


async def get_rate_limiter() -> RateLimiter:
    """
    Get or create the process-wide rate limiter.

    WHY: One Redis connection pool is shared by every request.
    """
    global _rate_limiter

    if _rate_limiter is None:
        redis_client = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        _rate_limiter = RateLimiter(redis_client=redis_client)

    return _rate_limiter


# ============================================================================
# Rate Limit Middleware
# ============================================================================


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies RATE_LIMITS to POST requests before they reach any handler.

    Usage:
        app.add_middleware(RateLimitMiddleware)
    """

    async def dispatch(self, request: Request, call_next):
        config = RATE_LIMITS.get(request.url.path)

        if not settings.RATE_LIMIT_ENABLED or config is None or request.method != "POST":
            return await call_next(request)

        path = request.url.path
        limiter = await get_rate_limiter()
        result = await limiter.check_rate_limit(get_client_ip(request), path, config)

        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_after),
        }

        if not result.allowed:
            logger.warning(f"Rate limit exceeded on {path} for {get_client_ip(request)}")
            exc = RateLimitExceeded(retry_after=result.reset_after)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers={**headers, "Retry-After": str(result.reset_after)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
