"""
Admin console API endpoints.

WHAT: Ticket management and audit queries for admins and super admins.

WHY: Admins see every ticket, may set any status or priority, assign
tickets, post internal notes, and read the audit trail. The role check
runs in the router dependency; TicketWorkflowEngine repeats it for the
operations that need it, so a service call from anywhere else is held to
the same rule.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from helpdesk.core.constants import AUDIT_QUERY_DEFAULT_LIMIT, AUDIT_QUERY_MAX_LIMIT
from helpdesk.core.deps import get_audit_service, get_workflow_engine, require_admin
from helpdesk.models.audit_log import AuditTargetType
from helpdesk.models.ticket import TicketPriority, TicketStatus
from helpdesk.schemas.audit import AuditLogListResponse, AuditLogResponse
from helpdesk.schemas.ticket import (
    AdminTicketCreate,
    CommentCreate,
    CommentResponse,
    TicketListResponse,
    TicketResponse,
    TicketUpdate,
)
from helpdesk.services.audit import AuditService
from helpdesk.services.sessions import SessionPrincipal
from helpdesk.services.workflow import TicketWorkflowEngine


router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================================================
# Tickets
# ============================================================================


@router.get("/tickets", response_model=TicketListResponse)
async def list_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    priority: Optional[TicketPriority] = Query(None),
    assigned_to: Optional[int] = Query(None, gt=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    admin: SessionPrincipal = Depends(require_admin),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketListResponse:
    """
    List all tickets, newest first.

    Query params:
        status, priority, assigned_to: Optional filters
        skip, limit: Pagination
    """
    tickets, total = await engine.list_tickets(
        admin,
        status=status_filter,
        priority=priority,
        assigned_to_id=assigned_to,
        skip=skip,
        limit=limit,
    )
    return TicketListResponse(
        items=[TicketResponse.model_validate(t) for t in tickets],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    data: AdminTicketCreate,
    admin: SessionPrincipal = Depends(require_admin),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketResponse:
    """
    Create a ticket on behalf of a department.

    Raises:
        AssignmentConflictError (409): Assignee missing or inactive
    """
    ticket = await engine.create_admin_ticket(data, admin)
    return TicketResponse.model_validate(ticket)


@router.get("/tickets/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: int,
    admin: SessionPrincipal = Depends(require_admin),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketResponse:
    ticket = await engine.get_ticket(ticket_id, admin)
    return TicketResponse.model_validate(ticket)


@router.patch("/tickets/{ticket_id}", response_model=TicketResponse)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    admin: SessionPrincipal = Depends(require_admin),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> TicketResponse:
    """
    Change status, priority and/or assignment.

    Only the fields present in the body are applied; assigned_to: null
    unassigns.

    Raises:
        AssignmentConflictError (409): Assignee missing or inactive
    """
    ticket = await engine.update_ticket(ticket_id, data.changes(), admin)
    return TicketResponse.model_validate(ticket)


@router.get("/tickets/{ticket_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    ticket_id: int,
    admin: SessionPrincipal = Depends(require_admin),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> List[CommentResponse]:
    """All comments, internal notes included, oldest first."""
    comments = await engine.list_comments(ticket_id, admin)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "/tickets/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    ticket_id: int,
    data: CommentCreate,
    admin: SessionPrincipal = Depends(require_admin),
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> CommentResponse:
    comment = await engine.add_comment(ticket_id, admin, data.content, data.visibility)
    return CommentResponse.model_validate(comment)


# ============================================================================
# Audit trail
# ============================================================================


@router.get("/audit/actors/{actor_id}", response_model=AuditLogListResponse)
async def audit_by_actor(
    actor_id: int,
    limit: int = Query(AUDIT_QUERY_DEFAULT_LIMIT, ge=1, le=AUDIT_QUERY_MAX_LIMIT),
    admin: SessionPrincipal = Depends(require_admin),
    audit: AuditService = Depends(get_audit_service),
) -> AuditLogListResponse:
    """Everything one account did, newest first."""
    entries = await audit.find_by_actor(actor_id, limit=limit)
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        count=len(entries),
    )


@router.get("/audit/targets/{target_type}/{target_id}", response_model=AuditLogListResponse)
async def audit_by_target(
    target_type: AuditTargetType,
    target_id: int,
    limit: int = Query(AUDIT_QUERY_DEFAULT_LIMIT, ge=1, le=AUDIT_QUERY_MAX_LIMIT),
    admin: SessionPrincipal = Depends(require_admin),
    audit: AuditService = Depends(get_audit_service),
) -> AuditLogListResponse:
    """Forensic trail of one ticket or account, newest first."""
    entries = await audit.find_by_target(target_type, target_id, limit=limit)
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        count=len(entries),
    )
