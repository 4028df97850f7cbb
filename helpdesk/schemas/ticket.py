"""
Pydantic schemas for ticket endpoints.

WHAT: Request/response schemas for public submission, the admin console
and the department portal.

WHY: Each entry point gets its own create schema because each one trusts
the caller with different fields:
- Public submission: reporter identity is whatever the form says
- Admin console: may set priority, status and assignee up front
- Department portal: reporter name, priority and department are accepted
  for form compatibility but always overwritten by the workflow engine

HOW: Uses Pydantic v2 with Field constraints; string input is stripped
before length checks.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.core.constants import (
    COMMENT_MAX_LENGTH,
    COMMENT_MIN_LENGTH,
    DEPARTMENT_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    REPORTER_NAME_MAX_LENGTH,
    TICKET_DESCRIPTION_MAX_LENGTH,
    TICKET_TITLE_MAX_LENGTH,
)
from helpdesk.models.ticket import CommentVisibility, TicketPriority, TicketStatus


_PHONE_PATTERN = r"^[0-9+()\-. ]*$"


# ============================================================================
# Ticket Creation Schemas
# ============================================================================


class _TicketBody(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=TICKET_TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=TICKET_DESCRIPTION_MAX_LENGTH)
    reporter_phone: Optional[str] = Field(
        None, max_length=PHONE_MAX_LENGTH, pattern=_PHONE_PATTERN
    )


class PublicTicketCreate(_TicketBody):
    """
    Anonymous ticket submission.
    """

    reporter_name: str = Field(..., min_length=1, max_length=REPORTER_NAME_MAX_LENGTH)
    reporter_department: str = Field(..., min_length=1, max_length=DEPARTMENT_MAX_LENGTH)
    priority: Optional[TicketPriority] = Field(
        None, description="Defaults to 'unset' when omitted"
    )


class AdminTicketCreate(_TicketBody):
    """
    Ticket created from the admin console on behalf of a department.

    The reporter name is always the creating admin's username.
    """

    reporter_department: str = Field(..., min_length=1, max_length=DEPARTMENT_MAX_LENGTH)
    priority: TicketPriority = TicketPriority.UNSET
    status: TicketStatus = TicketStatus.OPEN
    assigned_to: Optional[int] = Field(None, gt=0)


class DepartmentTicketCreate(_TicketBody):
    """
    Ticket created by a department account through the portal.

    reporter_name, priority and reporter_department are accepted but
    ignored: the ticket is always filed under the account's username and
    department, with priority 'unset'.
    """

    reporter_name: Optional[str] = Field(None, min_length=1, max_length=REPORTER_NAME_MAX_LENGTH)
    priority: Optional[TicketPriority] = None
    reporter_department: Optional[str] = Field(None, max_length=DEPARTMENT_MAX_LENGTH)


# ============================================================================
# Ticket Mutation Schemas
# ============================================================================


class TicketUpdate(BaseModel):
    """
    Partial ticket update.

    Only fields present in the request are considered. An explicit null
    (or empty string) for assigned_to unassigns the ticket.
    """

    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assigned_to: Optional[int] = Field(None, gt=0)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def empty_assignee_means_unassign(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def changes(self) -> dict:
        """Fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class TicketStatusChange(BaseModel):
    """Status change from the department portal."""

    status: TicketStatus


class CommentCreate(BaseModel):
    """
    Comment creation request.

    visibility is only honored for admins; department comments are public.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=COMMENT_MIN_LENGTH, max_length=COMMENT_MAX_LENGTH)
    visibility: Optional[CommentVisibility] = None


# ============================================================================
# Response Schemas
# ============================================================================


class TicketResponse(BaseModel):
    """Ticket as returned to admins and department users."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    reporter_name: str
    reporter_department: str
    reporter_phone: Optional[str] = None
    reporter_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    is_admin_created: bool
    created_at: datetime
    updated_at: datetime


class PublicTicketReceipt(BaseModel):
    """
    Confirmation for an anonymous submission.

    WHY: Anonymous submitters get the reference number and nothing else.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: TicketStatus
    created_at: datetime


class TicketListResponse(BaseModel):
    items: List[TicketResponse]
    total: int
    skip: int
    limit: int


class CommentResponse(BaseModel):
    """Comment data for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    author_id: Optional[int] = None
    content: str
    visibility: CommentVisibility
    created_at: datetime
