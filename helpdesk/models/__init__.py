"""
Database models package.

WHY: Importing every model here registers all tables on Base.metadata,
which create_all relies on.
"""

from helpdesk.models.base import Base, TimestampMixin, CreatedAtMixin, PrimaryKeyMixin
from helpdesk.models.user import (
    User,
    UserRole,
    UserStatus,
    ADMIN_ROLES,
    SUPER_ADMIN_ROLES,
    DEPARTMENT_ROLES,
)
from helpdesk.models.ticket import (
    Ticket,
    TicketComment,
    TicketStatus,
    TicketPriority,
    CommentVisibility,
)
from helpdesk.models.audit_log import AuditLog, AuditAction, AuditTargetType
from helpdesk.models.session import UserSession

__all__ = [
    "Base",
    "TimestampMixin",
    "CreatedAtMixin",
    "PrimaryKeyMixin",
    "User",
    "UserRole",
    "UserStatus",
    "ADMIN_ROLES",
    "SUPER_ADMIN_ROLES",
    "DEPARTMENT_ROLES",
    "Ticket",
    "TicketComment",
    "TicketStatus",
    "TicketPriority",
    "CommentVisibility",
    "AuditLog",
    "AuditAction",
    "AuditTargetType",
    "UserSession",
]
