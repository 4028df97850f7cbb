"""
Exception-to-response mapping.

Every error leaves the API in one shape:

    {"error": <name>, "message": <text>, "status_code": <int>, "details": <dict|null>}

AppException subclasses supply their own body through to_dict(). The
handlers below give framework errors (body validation, unknown routes)
and unexpected exceptions the same shape.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpdesk.core.exceptions import AppException


logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def _error_response(
    status_code: int,
    error: str,
    message: Any,
    details: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "status_code": status_code,
            "details": details,
        },
    )


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render an AppException.

    Server-side failures are logged with their context, which to_dict()
    keeps out of the response.
    """
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} on {_where(request)}: {exc.message}",
            exc_info=exc,
            extra={"context": exc.context},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body or parameter validation failed: 400 with one entry per field."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(
        400, "ValidationError", "Request validation failed", {"errors": errors}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, "HTTPException", exc.detail)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled: log the traceback, tell the client nothing specific."""
    logger.exception(f"Unhandled error on {_where(request)}", exc_info=exc)
    return _error_response(500, "InternalServerError", GENERIC_ERROR_MESSAGE)
