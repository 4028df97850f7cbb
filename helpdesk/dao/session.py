"""
Session Data Access Object.

WHAT: Storage for server-side login sessions.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.dao.base import BaseDAO
from helpdesk.models.session import UserSession


class SessionDAO(BaseDAO[UserSession]):
    """Data Access Object for UserSession rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserSession, session)

    async def delete_by_id(self, session_id: str) -> bool:
        """
        Delete one session.

        Returns:
            True if a row was deleted
        """
        result = await self.session.execute(
            delete(UserSession).where(UserSession.id == session_id)
        )
        return result.rowcount > 0

    async def delete_for_user(self, user_id: int) -> int:
        """
        Delete every session of an account.

        Returns:
            Number of sessions deleted
        """
        result = await self.session.execute(
            delete(UserSession).where(UserSession.user_id == user_id)
        )
        return result.rowcount

    async def delete_expired(self, user_id: Optional[int] = None) -> int:
        """
        Delete sessions past their expiry, optionally for one account only.

        Returns:
            Number of sessions deleted
        """
        query = delete(UserSession).where(UserSession.expires_at <= datetime.utcnow())
        if user_id is not None:
            query = query.where(UserSession.user_id == user_id)
        result = await self.session.execute(query)
        return result.rowcount
