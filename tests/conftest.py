"""
Shared fixtures: an in-memory database per test, an HTTP client bound to
it, and a rate limiter that never refuses.
"""

import os

# Settings are read at import time, so the environment is prepared before
# anything from helpdesk is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-not-for-production-use")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from helpdesk.db.session import get_db
from helpdesk.main import app
from helpdesk.middleware import rate_limiter as rate_limiter_module
from helpdesk.middleware.rate_limiter import RateLimitResult
from helpdesk.models import Base


# One shared connection, so every session in a test sees the same database
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session used both by the test body and, through the client, by the app."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client for the app with get_db pointed at the test session.

    The override mirrors get_db: commit when the handler returns, roll back
    when it raises. A failed request therefore leaves no partial writes
    except the ones the service committed on purpose.
    """

    async def request_scoped_session():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = request_scoped_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limiting(monkeypatch):
    """
    Swap the Redis limiter for one that admits every request.

    tests/unit/middleware/test_rate_limiter.py covers the real limiter.
    """
    always_allowed = RateLimitResult(allowed=True, remaining=100, reset_after=60, limit=100)
    limiter = MagicMock()
    limiter.check_rate_limit = AsyncMock(return_value=always_allowed)

    async def permissive_limiter():
        return limiter

    monkeypatch.setattr(rate_limiter_module, "get_rate_limiter", permissive_limiter)
    monkeypatch.setattr(rate_limiter_module, "_rate_limiter", None)
