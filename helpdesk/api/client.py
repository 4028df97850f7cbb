"""
Department portal API endpoints.

WHY: Department accounts only ever see tickets they reported through the
portal, and only the public comments on them. They may close a ticket or
hand it back to the admins, but never touch priority or assignment.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from helpdesk.core.deps import get_workflow_engine, require_department
from helpdesk.models.ticket import TicketStatus
from helpdesk.schemas.ticket import (
    CommentCreate,
    CommentResponse,
    DepartmentTicketCreate,
    TicketListResponse,
    TicketResponse,
    TicketStatusChange,
)
from helpdesk.services.sessions import SessionPrincipal
from helpdesk.services.workflow import TicketWorkflowEngine


router = APIRouter(prefix="/client", tags=["client"])


@router.get("/tickets", response_model=TicketListResponse)
async def list_my_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    user: SessionPrincipal = Depends(require_department),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketListResponse:
    tickets, total = await engine.list_tickets(user, status=status_filter, skip=skip, limit=limit)
    return TicketListResponse(
        items=[TicketResponse.model_validate(t) for t in tickets],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    data: DepartmentTicketCreate,
    user: SessionPrincipal = Depends(require_department),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketResponse:
    """
    Report a problem for the caller's own department.

    Priority and department in the body are ignored.
    """
    ticket = await engine.create_department_ticket(data, user)
    return TicketResponse.model_validate(ticket)


@router.get("/tickets/{ticket_id}", response_model=TicketResponse)
async def get_my_ticket(
    ticket_id: int,
    user: SessionPrincipal = Depends(require_department),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketResponse:
    ticket = await engine.get_ticket(ticket_id, user)
    return TicketResponse.model_validate(ticket)


@router.patch("/tickets/{ticket_id}/status", response_model=TicketResponse)
async def change_status(
    ticket_id: int,
    data: TicketStatusChange,
    user: SessionPrincipal = Depends(require_department),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketResponse:
    """
    Move a ticket to waiting_on_admin or closed.

    Raises:
        InvalidStateTransitionError (400): Any other target, or reopening
    """
    ticket = await engine.update_status(ticket_id, data.status, user)
    return TicketResponse.model_validate(ticket)


@router.get("/tickets/{ticket_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    ticket_id: int,
    user: SessionPrincipal = Depends(require_department),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> List[CommentResponse]:
    """Public comments only."""
    comments = await engine.list_comments(ticket_id, user)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "/tickets/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    ticket_id: int,
    data: CommentCreate,
    user: SessionPrincipal = Depends(require_department),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> CommentResponse:
    """
    Comment on an own ticket.

    The comment is always public, and an open or in-progress ticket moves
    to waiting_on_admin.
    """
    comment = await engine.add_comment(ticket_id, user, data.content, data.visibility)
    return CommentResponse.model_validate(comment)
