"""
Anonymous ticket submission.

WHY: Departments without an account report problems through a public
form. The caller gets a receipt with the reference number and nothing
else; the ticket itself is only visible in the admin console.
"""

from fastapi import APIRouter, Depends, status

from helpdesk.core.deps import get_workflow_engine
from helpdesk.schemas.ticket import PublicTicketCreate, PublicTicketReceipt
from helpdesk.services.workflow import TicketWorkflowEngine


router = APIRouter(prefix="/public", tags=["public"])


@router.post(
    "/tickets",
    response_model=PublicTicketReceipt,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a ticket",
)
async def submit_ticket(
    data: PublicTicketCreate,
    engine: TicketWorkflowEngine = Depends(get_workflow_engine),
) -> PublicTicketReceipt:
    ticket = await engine.create_public_ticket(data)
    return PublicTicketReceipt.model_validate(ticket)
