"""
FastAPI dependencies for authentication and authorization.

WHY: Every protected route resolves its caller through the same chain:
bearer token -> SessionAuthorizationGate -> role check. Routes never read
the token or the account themselves.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.db.session import get_db
from helpdesk.models.user import ADMIN_ROLES, DEPARTMENT_ROLES, SUPER_ADMIN_ROLES
from helpdesk.services.audit import AuditService
from helpdesk.services.auth_service import AuthenticationService
from helpdesk.services.authorization import SessionAuthorizationGate
from helpdesk.services.sessions import SessionPrincipal
from helpdesk.services.user_service import UserService
from helpdesk.services.workflow import TicketWorkflowEngine


# HTTP Bearer token security scheme
# auto_error=False: a missing header must become our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> SessionPrincipal:
    """
    Get the authenticated principal for this request.

    Usage:
        @router.get("/protected")
        async def protected_route(principal = Depends(get_current_principal)):
            return {"user_id": principal.id}

    Raises:
        AuthenticationError: No token or no live session
        SessionRevokedError: Account no longer active
    """
    token = credentials.credentials if credentials else None
    return await SessionAuthorizationGate(db).require_authenticated(token)


async def require_admin(
    principal: SessionPrincipal = Depends(get_current_principal),
) -> SessionPrincipal:
    """Require an admin or super admin."""
    return SessionAuthorizationGate.require_role(principal, ADMIN_ROLES)


async def require_super_admin(
    principal: SessionPrincipal = Depends(get_current_principal),
) -> SessionPrincipal:
    """Require a super admin."""
    return SessionAuthorizationGate.require_role(principal, SUPER_ADMIN_ROLES)


async def require_department(
    principal: SessionPrincipal = Depends(get_current_principal),
) -> SessionPrincipal:
    """Require a department account."""
    return SessionAuthorizationGate.require_role(principal, DEPARTMENT_ROLES)


# ============================================================================
# Service providers
# ============================================================================


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthenticationService:
    return AuthenticationService(db)


def get_workflow_engine(db: AsyncSession = Depends(get_db)) -> TicketWorkflowEngine:
    return TicketWorkflowEngine(db)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def get_audit_service(db: AsyncSession = Depends(get_db)) -> AuditService:
    return AuditService(db)
