"""
User account model.

WHY: Accounts are the principals of the helpdesk. Three roles exist:
admins and super admins work the console, department accounts use the
self-service portal and belong to exactly one department.

Accounts are never physically deleted; ``deleted`` is a terminal status so
audit entries and ticket history keep pointing at a real row.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.core.constants import (
    DEPARTMENT_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
)
from helpdesk.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_column_type


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: A closed set; the workflow capability table must cover every member
    and raw strings from outside are parsed into this enum before use.
    """

    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    DEPARTMENT = "department"


class UserStatus(str, enum.Enum):
    """Account status. Only ACTIVE accounts may authenticate or hold a session."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})
SUPER_ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN})
DEPARTMENT_ROLES = frozenset({UserRole.DEPARTMENT})


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Account with credentials, role and authentication state.

    Invariants:
    - department is set iff role is DEPARTMENT (enforced by UserService and
      by a table check constraint)
    - login_attempts >= LOCKOUT_THRESHOLD locks the account regardless of
      password correctness
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("login_attempts >= 0", name="ck_users_login_attempts_non_negative"),
    )

    # Identity
    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH), unique=True, index=True, nullable=False
    )
    email: Mapped[str] = mapped_column(
        String(EMAIL_MAX_LENGTH), unique=True, index=True, nullable=False
    )

    # Credentials
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    role: Mapped[UserRole] = mapped_column(enum_column_type(UserRole, "userrole"), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(DEPARTMENT_MAX_LENGTH), nullable=True)

    # Authentication state
    status: Mapped[UserStatus] = mapped_column(
        enum_column_type(UserStatus, "userstatus"),
        nullable=False,
        default=UserStatus.ACTIVE,
        index=True,
    )
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    password_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role}, status={self.status})>"
