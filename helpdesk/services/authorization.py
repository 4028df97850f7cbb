"""
Session authorization gate.

WHAT: Decides, per request, whether a presented session may proceed and
with which role.

WHY: A session outlives the account state it was created from. An account
can be deactivated, deleted or demoted while its sessions are still live
in other browsers. So the gate never trusts what the token says about
the account: it re-reads the account on every request, destroys the
session if the account can no longer log in, and takes the role from the
stored account rather than from the token.

HOW: Two steps, in order:
1. require_authenticated(token): token -> live session row -> live
   account. Denies with AuthenticationError when there is no usable
   session; destroys the session and denies with SessionRevokedError when
   the account is gone or not active.
2. require_role(principal, allowed): compares the live role against an
   allow-list. The denial never names the roles that were required.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
    SessionRevokedError,
)
from helpdesk.dao.user import UserDAO
from helpdesk.models.audit_log import AuditAction, AuditTargetType
from helpdesk.models.user import UserRole
from helpdesk.services.audit import AuditService
from helpdesk.services.sessions import SessionPrincipal, SessionService


logger = logging.getLogger(__name__)


class SessionAuthorizationGate:
    """
    Live session check and role check.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self.users = UserDAO(session)
        self.sessions = SessionService(session)
        self.audit = AuditService(session)

    async def require_authenticated(self, token: Optional[str]) -> SessionPrincipal:
        """
        Resolve a token to a principal backed by a live, active account.

        Args:
            token: Bearer token, or None if the request carried none

        Returns:
            SessionPrincipal with the account's current role

        Raises:
            AuthenticationError: No token, or the token has no live session
            SessionRevokedError: The account is missing or not active; the
                session has been destroyed
        """
        if not token:
            raise AuthenticationError(reason="no_session")

        _claims, user_session = await self.sessions.resolve(token)

        user = await self.users.get_by_id(user_session.user_id)

        if user is None or not user.is_active:
            await self._revoke(user_session.id, user_session.user_id, user is None)
            raise SessionRevokedError()

        return SessionPrincipal.from_user(user, session_id=user_session.id)

    async def _revoke(self, session_id: str, user_id: int, account_missing: bool) -> None:
        """
        Destroy a session whose account failed the live check.

        WHY: The request is about to fail and roll back, so the deletion
        and its audit entry are committed here.
        """
        await self.sessions.destroy(session_id)
        await self.audit.record(
            actor_id=None if account_missing else user_id,
            action=AuditAction.SESSION_REVOKED,
            target_type=AuditTargetType.USER,
            target_id=user_id,
            details={"reason": "account_missing" if account_missing else "account_not_active"},
        )
        await self._session.commit()
        logger.warning(f"Revoked session of user {user_id}: account no longer active")

    @staticmethod
    def require_role(principal: SessionPrincipal, allowed: Iterable[UserRole]) -> SessionPrincipal:
        """
        Check the principal's role against an allow-list.

        Assumes require_authenticated() produced the principal, so its role
        is the stored one.

        Args:
            principal: Authenticated principal
            allowed: Roles permitted for the operation

        Returns:
            The same principal

        Raises:
            InsufficientPermissionsError: Role not in the allow-list
        """
        if principal.role not in frozenset(allowed):
            logger.info(f"User {principal.id} denied: role {principal.role.value} not permitted")
            raise InsufficientPermissionsError()
        return principal
