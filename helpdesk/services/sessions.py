"""
Server-side sessions.

WHAT: Creates, resolves and destroys login sessions, and defines the
minimal principal a session carries.

WHY: The principal is deliberately small ({id, username, email, role}).
It identifies the caller but never authorizes anything on its own: the
SessionAuthorizationGate re-reads the account on every request.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import create_session_token, decode_session_token
from helpdesk.core.config import settings
from helpdesk.core.exceptions import AuthenticationError
from helpdesk.dao.session import SessionDAO
from helpdesk.models.session import UserSession
from helpdesk.models.user import User, UserRole


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionPrincipal:
    """
    The identity bound to a session.

    session_id is None until a session row exists (right after
    authenticate(), before login() creates the session).
    """

    id: int
    username: str
    email: str
    role: UserRole
    session_id: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, session_id: Optional[str] = None) -> "SessionPrincipal":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=UserRole(user.role),
            session_id=session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Session payload. Password material is never part of it."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
        }


class SessionService:
    """
    Service for session lifecycle.
    """

    def __init__(self, session: AsyncSession):
        self.dao = SessionDAO(session)

    async def create(
        self,
        principal: SessionPrincipal,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[str, SessionPrincipal]:
        """
        Open a session for an authenticated principal.

        Expired sessions of the same account are pruned first.

        Args:
            principal: Principal returned by authentication
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            Tuple of (signed token, principal bound to the new session)
        """
        await self.dao.delete_expired(user_id=principal.id)

        session_id = secrets.token_urlsafe(32)
        expires_at = datetime.utcnow() + timedelta(minutes=settings.SESSION_TTL_MINUTES)

        await self.dao.create(
            id=session_id,
            user_id=principal.id,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        token = create_session_token(session_id, principal.to_dict(), expires_at)
        return token, SessionPrincipal(
            id=principal.id,
            username=principal.username,
            email=principal.email,
            role=principal.role,
            session_id=session_id,
        )

    async def resolve(self, token: str) -> Tuple[Dict[str, Any], UserSession]:
        """
        Map a presented token to its live session row.

        Args:
            token: Bearer token

        Returns:
            Tuple of (token claims, session row)

        Raises:
            AuthenticationError: If the token is invalid or its session is
                gone or expired
        """
        claims = decode_session_token(token)

        user_session = await self.dao.get_by_id(claims["sid"])
        if user_session is None:
            raise AuthenticationError(reason="session_missing")

        if str(user_session.user_id) != claims["sub"]:
            raise AuthenticationError(reason="session_mismatch")

        if user_session.is_expired():
            await self.dao.delete_by_id(user_session.id)
            raise AuthenticationError(reason="session_expired")

        return claims, user_session

    async def destroy(self, session_id: str) -> bool:
        return await self.dao.delete_by_id(session_id)

    async def destroy_all_for_user(self, user_id: int) -> int:
        """
        End every session of an account.

        Called when an administrator changes the account's role or status
        or resets its password.

        Returns:
            Number of sessions ended
        """
        count = await self.dao.delete_for_user(user_id)
        if count:
            logger.info(f"Destroyed {count} session(s) for user {user_id}")
        return count
