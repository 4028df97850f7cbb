"""
Authentication service.

WHAT: Verifies username/password pairs, enforces account lockout and opens
sessions.

WHY: Login is the one place where an anonymous caller tests account state,
so every rejection looks identical from outside:
- unknown username, locked account, inactive account and wrong password
  all return None from authenticate() and become the same 401 in login()
- the bcrypt comparison always runs (against a placeholder hash when the
  username is unknown), so response time does not reveal which case hit
- only operator-facing logs and audit entries record the actual reason

HOW: The password check comes first, then the rejection conditions in a
fixed order: unknown user, locked (login_attempts >= LOCKOUT_THRESHOLD),
not active, wrong password. A wrong password increments login_attempts in
SQL. Rejections commit their counter update and audit entry before
returning, because the request itself is about to fail and roll back.
"""

import asyncio
import logging
import time
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import verify_password, dummy_verify_password
from helpdesk.core.constants import LOCKOUT_THRESHOLD
from helpdesk.core.exceptions import AuthenticationError
from helpdesk.dao.user import UserDAO
from helpdesk.models.audit_log import AuditAction, AuditTargetType
from helpdesk.services.audit import AuditService
from helpdesk.services.sessions import SessionPrincipal, SessionService


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


class AuthenticationService:
    """
    Service for credential verification and login/logout.

    Example:
        auth = AuthenticationService(db)
        token, principal = await auth.login("jdoe", "S3cure!pass", ip="10.0.0.1")
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self.users = UserDAO(session)
        self.audit = AuditService(session)
        self.sessions = SessionService(session)

    async def _check_password(self, password: str, hashed_password: Optional[str]) -> bool:
        """
        Run the bcrypt comparison off the event loop.

        WHY: bcrypt is deliberately slow; running it in a worker thread lets
        other requests proceed while this one waits.
        """
        if hashed_password is None:
            return await asyncio.to_thread(dummy_verify_password)
        return await asyncio.to_thread(verify_password, password, hashed_password)

    async def _reject(
        self,
        username: str,
        reason: str,
        started: float,
        user_id: Optional[int] = None,
        ip: Optional[str] = None,
    ) -> None:
        """
        Audit a rejected attempt and make it durable.

        The reason is for operators only; callers always get None.
        """
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.warning(
            f"Login rejected for username={username!r} reason={reason} ({elapsed_ms:.0f}ms)"
        )
        await self.audit.record(
            actor_id=user_id,
            action=AuditAction.USER_LOGIN_FAILED,
            target_type=AuditTargetType.USER,
            target_id=user_id,
            details={"username": username, "reason": reason},
            ip=ip,
        )
        await self._session.commit()

    async def authenticate(
        self,
        username: str,
        password: str,
        ip: Optional[str] = None,
    ) -> Optional[SessionPrincipal]:
        """
        Verify credentials.

        Args:
            username: Username as typed
            password: Password as typed
            ip: Client IP for the audit trail (defaults to request context)

        Returns:
            SessionPrincipal on success, None on any rejection
        """
        started = time.perf_counter()

        user = await self.users.get_by_username_with_credentials(username)

        # Always pay for one bcrypt comparison, whether or not the user exists
        password_ok = await self._check_password(
            password, user.hashed_password if user else None
        )

        if user is None:
            await self._reject(username, "unknown_user", started, ip=ip)
            return None

        if user.login_attempts >= LOCKOUT_THRESHOLD:
            await self._reject(username, "locked", started, user_id=user.id, ip=ip)
            return None

        if not user.is_active:
            await self._reject(username, "inactive", started, user_id=user.id, ip=ip)
            return None

        if not password_ok:
            await self.users.increment_login_attempts(username)
            await self._reject(username, "bad_password", started, user_id=user.id, ip=ip)
            return None

        await self.users.update_last_login(user.id)
        await self.audit.record(
            actor_id=user.id,
            action=AuditAction.USER_LOGIN,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            details={"success": True},
            ip=ip,
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Login succeeded for user {user.id} ({elapsed_ms:.0f}ms)")

        return self.create_session_data(user)

    @staticmethod
    def create_session_data(user) -> SessionPrincipal:
        """Build the minimal session principal for an account."""
        return SessionPrincipal.from_user(user)

    async def login(
        self,
        username: str,
        password: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[str, SessionPrincipal]:
        """
        Authenticate and open a session.

        Returns:
            Tuple of (session token, principal)

        Raises:
            AuthenticationError: On any rejection, always with the same message
        """
        principal = await self.authenticate(username, password, ip=ip)
        if principal is None:
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        return await self.sessions.create(principal, ip_address=ip, user_agent=user_agent)

    async def logout(self, principal: SessionPrincipal) -> None:
        """
        End the principal's current session.
        """
        if principal.session_id:
            await self.sessions.destroy(principal.session_id)

        await self.audit.record(
            actor_id=principal.id,
            action=AuditAction.USER_LOGOUT,
            target_type=AuditTargetType.USER,
            target_id=principal.id,
        )
        logger.info(f"User {principal.id} logged out")
