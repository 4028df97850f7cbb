"""
Per-request origin data for the audit trail.

WHAT: Captures who is calling (client IP, user agent) and a request id
for every inbound request, and exposes it to code that has no Request
object, such as AuditService.

HOW: RequestContextMiddleware builds a RequestContext and binds it to a
ContextVar for the duration of the request. Concurrent requests each see
their own value; outside a request the accessor returns None.
"""

import re
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from helpdesk.core.constants import IP_ADDRESS_MAX_LENGTH


REQUEST_ID_HEADER = "X-Request-ID"

# Inbound ids are reused only when they look like an opaque token
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


@dataclass(frozen=True)
class RequestContext:
    """Origin of the request being handled."""

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "helpdesk_request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """Context of the current request, or None outside one."""
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Best-effort client address.

    Order: X-Real-IP, the first hop of X-Forwarded-For, then the socket
    peer. Both headers are client-controlled unless a proxy in front of
    the service overwrites them. The result is clamped to the width of
    the ip_address columns.
    """
    candidate = request.headers.get("X-Real-IP", "").strip()

    if not candidate:
        forwarded = request.headers.get("X-Forwarded-For", "")
        candidate = forwarded.split(",")[0].strip()

    if not candidate and request.client is not None:
        candidate = request.client.host or ""

    return candidate[:IP_ADDRESS_MAX_LENGTH] or "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")


def _request_id_for(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER, "")
    if _REQUEST_ID_PATTERN.match(inbound):
        return inbound
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind a RequestContext for each request and echo its id in the
    X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = RequestContext(
            request_id=_request_id_for(request),
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context

        token = _request_context.set(context)
        try:
            response = await call_next(request)
        finally:
            _request_context.reset(token)

        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response
