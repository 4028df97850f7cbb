"""
Unit tests for SessionAuthorizationGate and SessionService.

WHY: A session must never outlive the account state that justified it.
"""

from datetime import datetime, timedelta

import pytest

from helpdesk.core.exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
    SessionRevokedError,
)
from helpdesk.dao.audit_log import AuditLogDAO
from helpdesk.dao.session import SessionDAO
from helpdesk.dao.user import UserDAO
from helpdesk.models.audit_log import AuditAction
from helpdesk.models.user import ADMIN_ROLES, SUPER_ADMIN_ROLES, UserRole, UserStatus
from helpdesk.services.authorization import SessionAuthorizationGate
from helpdesk.services.sessions import SessionPrincipal, SessionService
from tests.factories import UserFactory


async def _open_session(db_session, user):
    token, principal = await SessionService(db_session).create(SessionPrincipal.from_user(user))
    await db_session.commit()
    return token, principal


class TestRequireAuthenticated:

    @pytest.mark.asyncio
    async def test_no_token(self, db_session):
        gate = SessionAuthorizationGate(db_session)

        with pytest.raises(AuthenticationError):
            await gate.require_authenticated(None)

    @pytest.mark.asyncio
    async def test_live_session_resolves(self, db_session):
        user = await UserFactory.create_admin(db_session)
        token, principal = await _open_session(db_session, user)
        gate = SessionAuthorizationGate(db_session)

        resolved = await gate.require_authenticated(token)

        assert resolved.id == user.id
        assert resolved.session_id == principal.session_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [UserStatus.INACTIVE, UserStatus.DELETED])
    async def test_deactivated_account_revokes_session(self, db_session, status):
        user = await UserFactory.create_department(db_session)
        token, principal = await _open_session(db_session, user)
        await UserDAO(db_session).update(user.id, status=status)
        await db_session.commit()
        gate = SessionAuthorizationGate(db_session)

        with pytest.raises(SessionRevokedError):
            await gate.require_authenticated(token)

        assert await SessionDAO(db_session).get_by_id(principal.session_id) is None
        revoked = await AuditLogDAO(db_session).get_by_action(AuditAction.SESSION_REVOKED)
        assert revoked[0].target_id == user.id

    @pytest.mark.asyncio
    async def test_revoked_session_stays_dead(self, db_session):
        user = await UserFactory.create_department(db_session)
        token, _principal = await _open_session(db_session, user)
        await UserDAO(db_session).update(user.id, status=UserStatus.INACTIVE)
        await db_session.commit()
        gate = SessionAuthorizationGate(db_session)

        with pytest.raises(SessionRevokedError):
            await gate.require_authenticated(token)

        # Reactivating the account does not bring the old session back
        await UserDAO(db_session).update(user.id, status=UserStatus.ACTIVE)
        await db_session.commit()
        with pytest.raises(AuthenticationError):
            await gate.require_authenticated(token)

    @pytest.mark.asyncio
    async def test_role_comes_from_stored_account(self, db_session):
        user = await UserFactory.create_admin(db_session)
        token, _principal = await _open_session(db_session, user)
        await UserDAO(db_session).update(user.id, role=UserRole.SUPER_ADMIN)
        await db_session.commit()
        gate = SessionAuthorizationGate(db_session)

        principal = await gate.require_authenticated(token)

        assert principal.role == UserRole.SUPER_ADMIN

    @pytest.mark.asyncio
    async def test_expired_session_rejected_and_removed(self, db_session):
        user = await UserFactory.create_admin(db_session)
        token, principal = await _open_session(db_session, user)
        sessions = SessionDAO(db_session)
        await sessions.update(principal.session_id, expires_at=datetime.utcnow() - timedelta(minutes=1))
        await db_session.commit()
        gate = SessionAuthorizationGate(db_session)

        with pytest.raises(AuthenticationError) as exc_info:
            await gate.require_authenticated(token)

        assert exc_info.value.context["reason"] == "session_expired"
        assert await sessions.get_by_id(principal.session_id) is None

    @pytest.mark.asyncio
    async def test_destroyed_session_rejected(self, db_session):
        user = await UserFactory.create_admin(db_session)
        token, principal = await _open_session(db_session, user)
        await SessionService(db_session).destroy(principal.session_id)
        gate = SessionAuthorizationGate(db_session)

        with pytest.raises(AuthenticationError) as exc_info:
            await gate.require_authenticated(token)

        assert exc_info.value.context["reason"] == "session_missing"


class TestRequireRole:

    def _principal(self, role):
        return SessionPrincipal(id=1, username="u", email="u@example.com", role=role)

    def test_allowed_role_passes(self):
        principal = self._principal(UserRole.ADMIN)
        assert SessionAuthorizationGate.require_role(principal, ADMIN_ROLES) is principal

    def test_denied_role_raises_without_detail(self):
        with pytest.raises(InsufficientPermissionsError) as exc_info:
            SessionAuthorizationGate.require_role(
                self._principal(UserRole.ADMIN), SUPER_ADMIN_ROLES
            )

        assert exc_info.value.to_dict()["details"] is None

    def test_department_denied_admin_operations(self):
        with pytest.raises(InsufficientPermissionsError):
            SessionAuthorizationGate.require_role(
                self._principal(UserRole.DEPARTMENT), ADMIN_ROLES
            )


class TestSessionService:

    @pytest.mark.asyncio
    async def test_destroy_all_for_user(self, db_session):
        user = await UserFactory.create_admin(db_session)
        await _open_session(db_session, user)
        await _open_session(db_session, user)
        service = SessionService(db_session)

        assert await service.destroy_all_for_user(user.id) == 2

    @pytest.mark.asyncio
    async def test_create_prunes_expired_sessions(self, db_session):
        user = await UserFactory.create_admin(db_session)
        _token, old = await _open_session(db_session, user)
        sessions = SessionDAO(db_session)
        await sessions.update(old.session_id, expires_at=datetime.utcnow() - timedelta(minutes=1))
        await db_session.commit()

        await _open_session(db_session, user)

        assert await sessions.get_by_id(old.session_id) is None
