"""
Ticket models for the helpdesk.

WHAT: SQLAlchemy models for tickets and their comments.

WHY: Tickets arrive three ways (public submission, admin console,
department portal) and move through a five-state workflow. Comments carry
a visibility flag so admins can keep internal notes on a ticket that the
reporting department can never read.

HOW: Uses SQLAlchemy 2.0 with:
- Enums for status, priority and visibility, stored by value
- Nullable foreign keys to users (SET NULL keeps history readable)
- Indexes for the console's status and assignee filters
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.core.constants import (
    DEPARTMENT_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    REPORTER_NAME_MAX_LENGTH,
    TICKET_TITLE_MAX_LENGTH,
)
from helpdesk.models.base import Base, enum_column_type


# ============================================================================
# Enums
# ============================================================================


class TicketStatus(str, Enum):
    """
    Ticket status values.

    - OPEN: New ticket
    - IN_PROGRESS: An admin is working on it
    - WAITING_ON_ADMIN: The reporter replied, ball is with the helpdesk
    - WAITING_ON_DEPARTMENT: The helpdesk asked the reporter for something
    - CLOSED: Done; only an admin can reopen it
    """

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING_ON_ADMIN = "waiting_on_admin"
    WAITING_ON_DEPARTMENT = "waiting_on_department"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority levels. UNSET until an admin triages the ticket."""

    UNSET = "unset"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CommentVisibility(str, Enum):
    """Who may read a comment. INTERNAL comments are admin-only."""

    PUBLIC = "public"
    INTERNAL = "internal"


# ============================================================================
# Ticket Model
# ============================================================================


class Ticket(Base):
    """
    Support ticket.

    Invariant: a ticket created through the department portal starts OPEN
    with UNSET priority, and its reporter_department is the creator's own
    department.
    """

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(TICKET_TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[TicketStatus] = mapped_column(
        enum_column_type(TicketStatus, "ticketstatus"),
        default=TicketStatus.OPEN,
        nullable=False,
    )
    priority: Mapped[TicketPriority] = mapped_column(
        enum_column_type(TicketPriority, "ticketpriority"),
        default=TicketPriority.UNSET,
        nullable=False,
    )

    # Reporter
    reporter_name: Mapped[str] = mapped_column(String(REPORTER_NAME_MAX_LENGTH), nullable=False)
    reporter_department: Mapped[str] = mapped_column(String(DEPARTMENT_MAX_LENGTH), nullable=False)
    reporter_phone: Mapped[Optional[str]] = mapped_column(String(PHONE_MAX_LENGTH), nullable=True)
    reporter_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    assigned_to_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    is_admin_created: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_assigned_to_id", "assigned_to_id"),
        Index("ix_tickets_reporter_id", "reporter_id"),
        Index("ix_tickets_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, status={self.status}, priority={self.priority})>"


# ============================================================================
# Comment Model
# ============================================================================


class TicketComment(Base):
    """
    Comment on a ticket. Append-only: never edited, never deleted.
    """

    __tablename__ = "ticket_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[CommentVisibility] = mapped_column(
        enum_column_type(CommentVisibility, "commentvisibility"),
        default=CommentVisibility.PUBLIC,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_ticket_comments_ticket_created", "ticket_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<TicketComment(id={self.id}, ticket_id={self.ticket_id}, visibility={self.visibility})>"
