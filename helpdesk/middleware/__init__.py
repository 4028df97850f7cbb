"""
Middleware package.

WHY: Request context and rate limiting apply to every request before any
route handler or dependency runs.
"""

from helpdesk.middleware.request_context import (
    RequestContextMiddleware,
    RequestContext,
    get_request_context,
    get_client_ip,
    get_user_agent,
)
from helpdesk.middleware.rate_limiter import (
    RateLimitMiddleware,
    RateLimiter,
    RateLimitConfig,
    RateLimitResult,
    RATE_LIMITS,
    get_rate_limiter,
)

__all__ = [
    "RequestContextMiddleware",
    "RequestContext",
    "get_request_context",
    "get_client_ip",
    "get_user_agent",
    "RateLimitMiddleware",
    "RateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "RATE_LIMITS",
    "get_rate_limiter",
]
