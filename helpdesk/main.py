"""
Helpdesk API application factory.

Wires logging, the error body mapping, request context and rate limiting
middleware, and the auth, public, admin, client and users routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpdesk import __version__
from helpdesk.core.config import settings
from helpdesk.core.exceptions import AppException
from helpdesk.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler,
)
from helpdesk.core.logging import configure_logging
from helpdesk.db.session import engine
from helpdesk.middleware import RequestContextMiddleware, RateLimitMiddleware
from helpdesk.models import Base
from helpdesk.api import admin, auth, client, public, users


logger = logging.getLogger(__name__)

EXCEPTION_HANDLERS = (
    (AppException, app_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (Exception, generic_exception_handler),
)

ROUTERS = (auth, public, admin, client, users)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create missing tables on startup and release the pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.PROJECT_NAME} {__version__} started")
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Helpdesk ticketing API",
        version=__version__,
        docs_url=f"{settings.API_PREFIX}/docs",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)

    # Last registered runs first: rejected requests still get an X-Request-ID.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in ROUTERS:
        app.include_router(module.router, prefix=settings.API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
