"""
Database session management.

WHY: Each request gets one AsyncSession and therefore one transaction.
A mutation and the audit entry that describes it are written through the
same session, so they commit together or roll back together.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from helpdesk.core.config import settings


def _engine_options() -> Dict[str, Any]:
    """
    Build engine keyword arguments for the configured backend.

    WHY: SQLite's pool does not accept pool sizing arguments.
    """
    options: Dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if not settings.is_sqlite:
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    return options


engine = create_async_engine(settings.async_database_url, **_engine_options())

# expire_on_commit=False keeps loaded attributes usable after the commit
# that precedes a rejected login or a revoked session.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    Commits when the handler returns, rolls back when it raises.
    Services that must persist state on a failure path (failed-login
    counters, revoked sessions) commit explicitly before raising.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
