"""
Service layer.

WHY: Business rules live here, between the HTTP routers and the DAOs.
Every service takes the request's AsyncSession, so its writes and its
audit entries commit or roll back together.
"""

from helpdesk.services.audit import AuditService
from helpdesk.services.auth_service import AuthenticationService
from helpdesk.services.authorization import SessionAuthorizationGate
from helpdesk.services.comment_visibility import CommentVisibilityFilter
from helpdesk.services.sessions import SessionPrincipal, SessionService
from helpdesk.services.ticket_state import TicketStateMachine
from helpdesk.services.user_service import UserService
from helpdesk.services.workflow import TicketWorkflowEngine

__all__ = [
    "AuditService",
    "AuthenticationService",
    "SessionAuthorizationGate",
    "CommentVisibilityFilter",
    "SessionPrincipal",
    "SessionService",
    "TicketStateMachine",
    "UserService",
    "TicketWorkflowEngine",
]
