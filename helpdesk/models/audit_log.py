"""
Audit Log Model.

WHAT: SQLAlchemy model for the append-only audit trail.

WHY: Every privileged mutation (logins, ticket transitions, account
changes) leaves one entry naming who did what to which target, from where.
Read back per actor or per target, the entries reconstruct "who changed
what, when" for tickets and accounts alike.

HOW: Immutable rows; the DAO refuses updates and deletes. The action is a
plain string column so the vocabulary can grow without a schema change;
AuditAction lists the verbs the application writes.
"""

import enum
from typing import Optional

from sqlalchemy import Integer, String, ForeignKey, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.core.constants import AUDIT_ACTION_MAX_LENGTH, IP_ADDRESS_MAX_LENGTH
from helpdesk.models.base import Base, CreatedAtMixin, PrimaryKeyMixin


class AuditAction(str, enum.Enum):
    """
    Enumeration of auditable actions.

    Categories:
    - Authentication: login, failed login, logout
    - Tickets: creation, field changes, comments, automatic transitions
    - Accounts: creation, changes, deletion, password reset, unlock
    """

    # Authentication events
    USER_LOGIN = "USER_LOGIN"
    USER_LOGIN_FAILED = "USER_LOGIN_FAILED"
    USER_LOGOUT = "USER_LOGOUT"
    SESSION_REVOKED = "SESSION_REVOKED"

    # Ticket events
    TICKET_CREATED = "TICKET_CREATED"
    CREATE_ADMIN_TICKET = "CREATE_ADMIN_TICKET"
    TICKET_UPDATED = "TICKET_UPDATED"
    TICKET_STATUS_AUTO_CHANGED = "TICKET_STATUS_AUTO_CHANGED"
    COMMENT_ADDED = "COMMENT_ADDED"

    # Account events
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    PASSWORD_RESET = "PASSWORD_RESET"
    USER_UNLOCKED = "USER_UNLOCKED"


class AuditTargetType(str, enum.Enum):
    """Kinds of records an audit entry can point at."""

    USER = "user"
    TICKET = "ticket"


class AuditLog(Base, PrimaryKeyMixin, CreatedAtMixin):
    """
    Immutable audit log entry.

    Fields:
    - actor_id: Who performed the action (NULL for anonymous submissions,
      unknown-user login failures, or an actor row that no longer exists)
    - action: What happened (AuditAction value)
    - target_type / target_id: What it happened to
    - details: Structured payload, e.g. {"changes": {"status": {"from": ..., "to": ...}}}
    - ip_address / user_agent: Where the request came from
    - created_at: When (from CreatedAtMixin)
    """

    __tablename__ = "audit_logs"

    actor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[str] = mapped_column(String(AUDIT_ACTION_MAX_LENGTH), nullable=False, index=True)

    target_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    target_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    # NOTE: 'metadata' is reserved by SQLAlchemy, hence 'details'
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    ip_address: Mapped[Optional[str]] = mapped_column(String(IP_ADDRESS_MAX_LENGTH), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"actor_id={self.actor_id}, target={self.target_type}:{self.target_id})>"
        )
