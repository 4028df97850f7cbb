"""
Account management service.

WHAT: Super-admin operations on accounts: create, update, soft delete,
status toggle, password reset and lockout release.

WHY: These are the mutations that change what an existing session is
allowed to do, so each one that alters role, status or password ends all
sessions of the account. Two standing rules are enforced here:
- department is set iff role is department
- the last active super admin cannot be demoted, deactivated or deleted
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import hash_password
from helpdesk.core.exceptions import (
    BusinessRuleViolation,
    ResourceAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from helpdesk.core.validators import password_policy_errors, username_errors
from helpdesk.dao.user import UserDAO
from helpdesk.models.audit_log import AuditAction, AuditTargetType
from helpdesk.models.user import SUPER_ADMIN_ROLES, User, UserRole, UserStatus
from helpdesk.schemas.user import UserCreate
from helpdesk.services.audit import AuditService
from helpdesk.services.authorization import SessionAuthorizationGate
from helpdesk.services.sessions import SessionPrincipal, SessionService


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"email", "role", "department", "status"})


def _check_department(role: UserRole, department: Optional[str]) -> None:
    if role == UserRole.DEPARTMENT and not department:
        raise ValidationError("Department is required for department users", field="department")
    if role != UserRole.DEPARTMENT and department:
        raise ValidationError(
            "Only department users can belong to a department", field="department"
        )


def _parse_choice(enum_class, value: Any, field: str):
    try:
        return enum_class(value)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value}",
            field=field,
            allowed=[member.value for member in enum_class],
        )


def _check_password(password: str) -> None:
    errors = password_policy_errors(password)
    if errors:
        raise ValidationError("; ".join(errors), field="password")


class UserService:
    """
    Service for account management. Every method requires a super admin.
    """

    def __init__(self, session: AsyncSession):
        self.users = UserDAO(session)
        self.sessions = SessionService(session)
        self.audit = AuditService(session)

    async def _get_manageable(self, user_id: int) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None or user.status == UserStatus.DELETED:
            raise UserNotFoundError(user_id=user_id)
        return user

    async def _guard_last_super_admin(self, user: User) -> None:
        """
        Refuse to remove the last active super admin.

        Raises:
            BusinessRuleViolation: user is the only active super admin
        """
        if user.role != UserRole.SUPER_ADMIN or user.status != UserStatus.ACTIVE:
            return
        if await self.users.count_active_super_admins() <= 1:
            raise BusinessRuleViolation(
                "Cannot remove the last active super admin",
                user_id=user.id,
            )

    # ========================================================================
    # Reads
    # ========================================================================

    async def list_users(self, actor: SessionPrincipal, include_deleted: bool = False) -> List[User]:
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)
        return await self.users.list_users(include_deleted=include_deleted)

    async def get_user(self, user_id: int, actor: SessionPrincipal) -> User:
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id=user_id)
        return user

    # ========================================================================
    # Mutations
    # ========================================================================

    async def create_user(self, data: UserCreate, actor: SessionPrincipal) -> User:
        """
        Create an account.

        Raises:
            ValidationError: Username, password or department rule violated
            ResourceAlreadyExistsError: Username or email taken
        """
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)

        errors = username_errors(data.username)
        if errors:
            raise ValidationError("; ".join(errors), field="username")
        _check_password(data.password)

        department = data.department or None
        _check_department(data.role, department)

        if await self.users.username_exists(data.username):
            raise ResourceAlreadyExistsError("Username already exists", field="username")
        if await self.users.email_exists(data.email):
            raise ResourceAlreadyExistsError("Email already exists", field="email")

        hashed = await asyncio.to_thread(hash_password, data.password)
        user = await self.users.create_user(
            username=data.username,
            email=data.email,
            hashed_password=hashed,
            role=data.role,
            department=department,
        )

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.USER_CREATED,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            details={
                "username": user.username,
                "email": user.email,
                "role": user.role.value,
                "department": user.department,
            },
        )
        logger.info(f"User {user.id} ({user.role.value}) created by {actor.id}")
        return user

    async def update_user(
        self,
        user_id: int,
        changes: Dict[str, Any],
        actor: SessionPrincipal,
    ) -> User:
        """
        Apply a partial update to email, role, department or status.

        Moving an account out of the department role clears its department.
        Role and status changes end the account's sessions.

        Raises:
            UserNotFoundError: Account missing or deleted
            ValidationError: Unknown field, department rule, or status 'deleted'
            ResourceAlreadyExistsError: Email taken
            BusinessRuleViolation: Would remove the last active super admin
        """
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unsupported field(s): {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )

        user = await self._get_manageable(user_id)

        new_role = (
            _parse_choice(UserRole, changes["role"], "role") if changes.get("role") else user.role
        )
        new_status = (
            _parse_choice(UserStatus, changes["status"], "status")
            if changes.get("status")
            else user.status
        )

        if new_status == UserStatus.DELETED:
            raise ValidationError("Use account deletion to delete a user", field="status")

        if "department" in changes:
            new_department = changes["department"] or None
        elif new_role != UserRole.DEPARTMENT:
            new_department = None
        else:
            new_department = user.department
        _check_department(new_role, new_department)

        new_email = changes.get("email") or user.email
        if new_email != user.email and await self.users.email_exists(
            new_email, exclude_user_id=user.id
        ):
            raise ResourceAlreadyExistsError("Email already exists", field="email")

        if new_role != UserRole.SUPER_ADMIN or new_status != UserStatus.ACTIVE:
            await self._guard_last_super_admin(user)

        diff = {}
        for field, new in (
            ("email", new_email),
            ("role", new_role),
            ("department", new_department),
            ("status", new_status),
        ):
            old = getattr(user, field)
            if old != new:
                diff[field] = (old, new)

        if not diff:
            return user

        user = await self.users.update(user.id, **{field: new for field, (_old, new) in diff.items()})

        if "role" in diff or "status" in diff:
            await self.sessions.destroy_all_for_user(user.id)

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.USER_UPDATED,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            details={
                "changes": {
                    field: {
                        "from": getattr(old, "value", old),
                        "to": getattr(new, "value", new),
                    }
                    for field, (old, new) in diff.items()
                }
            },
        )
        return user

    async def toggle_user_status(self, user_id: int, actor: SessionPrincipal) -> User:
        """Flip an account between active and inactive."""
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)
        user = await self._get_manageable(user_id)
        new_status = (
            UserStatus.INACTIVE if user.is_active else UserStatus.ACTIVE
        )
        return await self.update_user(user_id, {"status": new_status}, actor)

    async def delete_user(self, user_id: int, actor: SessionPrincipal) -> User:
        """
        Soft-delete an account.

        Raises:
            BusinessRuleViolation: Deleting yourself or the last super admin
            UserNotFoundError: Account missing or already deleted
        """
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)

        if user_id == actor.id:
            raise BusinessRuleViolation("Cannot delete yourself")

        user = await self._get_manageable(user_id)
        await self._guard_last_super_admin(user)

        snapshot = {"username": user.username, "email": user.email, "role": user.role.value}
        user = await self.users.update_status(user.id, UserStatus.DELETED)
        await self.sessions.destroy_all_for_user(user.id)

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.USER_DELETED,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            details={"deleted_user": snapshot},
        )
        logger.info(f"User {user.id} deleted by {actor.id}")
        return user

    async def reset_password(
        self,
        user_id: int,
        new_password: str,
        actor: SessionPrincipal,
    ) -> User:
        """
        Set a new password and end the account's sessions.

        Raises:
            ValidationError: Password policy violated
            UserNotFoundError: Account missing or deleted
        """
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)
        _check_password(new_password)

        user = await self._get_manageable(user_id)
        hashed = await asyncio.to_thread(hash_password, new_password)
        user = await self.users.update_password(user.id, hashed)
        await self.sessions.destroy_all_for_user(user.id)

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.PASSWORD_RESET,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            details={"reset_by": "admin"},
        )
        return user

    async def unlock_user(self, user_id: int, actor: SessionPrincipal) -> User:
        """
        Clear the failed-login counter of a locked account.
        """
        SessionAuthorizationGate.require_role(actor, SUPER_ADMIN_ROLES)
        user = await self._get_manageable(user_id)
        previous_attempts = user.login_attempts

        await self.users.reset_login_attempts(user.id)
        user = await self.users.get_by_id(user.id)

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.USER_UNLOCKED,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            details={"previous_attempts": previous_attempts},
        )
        return user
