"""
Ticket workflow engine.

WHAT: Creates tickets, applies status/priority/assignment changes, adds
comments and serves scoped reads, always on behalf of a known actor.

WHY: Every ticket mutation in the helpdesk goes through this class, which
makes it the one place where the role rules hold:
- department tickets start OPEN / UNSET in the creator's own department
- department users may only move their tickets to WAITING_ON_ADMIN or
  CLOSED, and never touch priority or assignment
- assignment targets must exist and be active
- a reporter's comment pushes a non-closed ticket to WAITING_ON_ADMIN

HOW: Each operation validates everything first, then mutates, then
writes exactly one audit entry carrying only the fields that changed.
A rejected operation raises before any write, so it leaves neither a
change nor an audit entry behind.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AssignmentConflictError,
    TicketNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from helpdesk.dao.ticket import TicketDAO, TicketCommentDAO
from helpdesk.dao.user import UserDAO
from helpdesk.models.audit_log import AuditAction, AuditTargetType
from helpdesk.models.ticket import (
    CommentVisibility,
    Ticket,
    TicketComment,
    TicketPriority,
    TicketStatus,
)
from helpdesk.models.user import ADMIN_ROLES, DEPARTMENT_ROLES, UserRole
from helpdesk.schemas.ticket import (
    AdminTicketCreate,
    DepartmentTicketCreate,
    PublicTicketCreate,
)
from helpdesk.services.audit import AuditService
from helpdesk.services.authorization import SessionAuthorizationGate
from helpdesk.services.comment_visibility import CommentVisibilityFilter
from helpdesk.services.sessions import SessionPrincipal
from helpdesk.services.ticket_state import TicketStateMachine


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"status", "priority", "assigned_to"})


def _audit_value(value: Any) -> Any:
    return value.value if isinstance(value, (TicketStatus, TicketPriority)) else value


class TicketWorkflowEngine:
    """
    Role-aware ticket operations.

    Example:
        engine = TicketWorkflowEngine(db)
        ticket = await engine.update_ticket(
            ticket_id, {"status": "in_progress", "assigned_to": 7}, admin
        )
    """

    def __init__(self, session: AsyncSession):
        self.tickets = TicketDAO(session)
        self.comments = TicketCommentDAO(session)
        self.users = UserDAO(session)
        self.audit = AuditService(session)
        self.visibility = CommentVisibilityFilter(session)

    # ========================================================================
    # Creation
    # ========================================================================

    async def create_public_ticket(self, data: PublicTicketCreate) -> Ticket:
        """
        Create a ticket from the anonymous submission form.

        Args:
            data: Validated submission

        Returns:
            Created ticket
        """
        ticket = await self.tickets.create(
            title=data.title,
            description=data.description,
            reporter_name=data.reporter_name,
            reporter_department=data.reporter_department,
            reporter_phone=data.reporter_phone,
            priority=data.priority or TicketStateMachine.initial_priority(),
            status=TicketStateMachine.initial_state(),
            is_admin_created=False,
        )

        await self.audit.record(
            actor_id=None,
            action=AuditAction.TICKET_CREATED,
            target_type=AuditTargetType.TICKET,
            target_id=ticket.id,
            details={
                "source": "public",
                "priority": ticket.priority.value,
                "department": ticket.reporter_department,
            },
        )
        logger.info(f"Public ticket {ticket.id} submitted for {ticket.reporter_department}")
        return ticket

    async def create_admin_ticket(
        self,
        data: AdminTicketCreate,
        actor: SessionPrincipal,
    ) -> Ticket:
        """
        Create a ticket from the admin console.

        Args:
            data: Validated ticket data
            actor: Creating admin

        Returns:
            Created ticket

        Raises:
            InsufficientPermissionsError: Actor is not an admin
            AssignmentConflictError: Requested assignee missing or inactive
        """
        SessionAuthorizationGate.require_role(actor, ADMIN_ROLES)

        assigned_to_id = None
        if data.assigned_to is not None:
            assigned_to_id = await self._resolve_assignee(data.assigned_to)

        ticket = await self.tickets.create(
            title=data.title,
            description=data.description,
            reporter_name=actor.username,
            reporter_department=data.reporter_department,
            reporter_phone=data.reporter_phone,
            reporter_id=actor.id,
            priority=data.priority,
            status=data.status,
            assigned_to_id=assigned_to_id,
            is_admin_created=True,
        )

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.CREATE_ADMIN_TICKET,
            target_type=AuditTargetType.TICKET,
            target_id=ticket.id,
            details={
                "title": ticket.title,
                "priority": ticket.priority.value,
                "status": ticket.status.value,
                "department": ticket.reporter_department,
            },
        )
        return ticket

    async def create_department_ticket(
        self,
        data: DepartmentTicketCreate,
        actor: SessionPrincipal,
    ) -> Ticket:
        """
        Create a ticket from the department portal.

        Status and priority are forced to OPEN / UNSET and the department
        comes from the stored account, whatever the request carried.

        Args:
            data: Validated ticket data
            actor: Creating department account

        Returns:
            Created ticket

        Raises:
            InsufficientPermissionsError: Actor is not a department account
            UserNotFoundError: Account no longer exists
            ValidationError: Account has no department
        """
        SessionAuthorizationGate.require_role(actor, DEPARTMENT_ROLES)

        user = await self.users.get_by_id(actor.id)
        if user is None:
            raise UserNotFoundError(user_id=actor.id)
        if not user.department:
            raise ValidationError(
                "Department not set for user. Please contact an administrator.",
                field="department",
            )

        ticket = await self.tickets.create(
            title=data.title,
            description=data.description,
            reporter_name=user.username,
            reporter_department=user.department,
            reporter_phone=data.reporter_phone,
            reporter_id=user.id,
            priority=TicketStateMachine.initial_priority(),
            status=TicketStateMachine.initial_state(),
            is_admin_created=False,
        )

        await self.audit.record(
            actor_id=user.id,
            action=AuditAction.TICKET_CREATED,
            target_type=AuditTargetType.TICKET,
            target_id=ticket.id,
            details={"source": "department", "department": ticket.reporter_department},
        )
        return ticket

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_ticket(self, ticket_id: int, actor: SessionPrincipal) -> Ticket:
        """
        Get a ticket the actor may see.

        Department accounts only see tickets they reported through the
        portal; anything else is reported as not found.

        Raises:
            TicketNotFoundError: Missing or out of scope
        """
        if actor.role in ADMIN_ROLES:
            ticket = await self.tickets.get_by_id(ticket_id)
        else:
            ticket = await self.tickets.get_for_reporter(ticket_id, actor.id)

        if ticket is None:
            raise TicketNotFoundError(ticket_id=ticket_id)
        return ticket

    async def list_tickets(
        self,
        actor: SessionPrincipal,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        assigned_to_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets visible to the actor, newest first.

        Department accounts get their own portal tickets; the priority and
        assignee filters are admin-only and ignored for them.

        Returns:
            Tuple of (tickets, total_count)
        """
        if actor.role in ADMIN_ROLES:
            return await self.tickets.list(
                skip=skip,
                limit=limit,
                status=status,
                priority=priority,
                assigned_to_id=assigned_to_id,
            )

        return await self.tickets.list(
            skip=skip,
            limit=limit,
            status=status,
            reporter_id=actor.id,
            include_admin_created=False,
        )

    async def list_comments(self, ticket_id: int, actor: SessionPrincipal) -> List[TicketComment]:
        """
        Comments of a ticket, scoped to the actor's role, oldest first.

        Raises:
            TicketNotFoundError: Ticket missing or out of scope
        """
        await self.get_ticket(ticket_id, actor)
        return await self.visibility.list_visible_comments(ticket_id, actor.role)

    # ========================================================================
    # Mutations
    # ========================================================================

    async def _resolve_assignee(self, user_id: Any) -> int:
        """
        Validate an assignment target.

        Raises:
            AssignmentConflictError: User missing or not active
        """
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid assignee", field="assigned_to")

        user = await self.users.get_by_id(user_id)
        if user is None or not user.is_active:
            logger.info(f"Rejected assignment to user {user_id}: missing or not active")
            raise AssignmentConflictError(assignee_id=user_id)
        return user.id

    async def update_ticket(
        self,
        ticket_id: int,
        changes: Dict[str, Any],
        actor: SessionPrincipal,
    ) -> Ticket:
        """
        Apply a partial status/priority/assignment update.

        Only keys present in changes are considered; a None or empty
        assigned_to unassigns. Values equal to the stored ones are not
        written and not audited.

        Args:
            ticket_id: Ticket to change
            changes: Partial update, keys from status/priority/assigned_to
            actor: Acting principal

        Returns:
            The ticket after the update

        Raises:
            TicketNotFoundError: Ticket missing or out of scope
            ValidationError: Unknown field or value
            InvalidStateTransitionError: Role may not make this change
            AssignmentConflictError: Assignee missing or inactive
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unsupported field(s): {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )

        ticket = await self.get_ticket(ticket_id, actor)
        role = UserRole(actor.role)
        diff: Dict[str, Tuple[Any, Any]] = {}

        if changes.get("status") is not None:
            requested_status = self._parse(TicketStatus, changes["status"], "status")
            TicketStateMachine.assert_status_change(role, ticket.status, requested_status)
            if requested_status != ticket.status:
                diff["status"] = (ticket.status, requested_status)

        if changes.get("priority") is not None:
            requested_priority = self._parse(TicketPriority, changes["priority"], "priority")
            TicketStateMachine.assert_priority_change(role, requested_priority)
            if requested_priority != ticket.priority:
                diff["priority"] = (ticket.priority, requested_priority)

        if "assigned_to" in changes:
            TicketStateMachine.assert_can_assign(role)
            requested = changes["assigned_to"]
            if requested is None or (isinstance(requested, str) and not requested.strip()):
                assignee_id = None
            else:
                assignee_id = await self._resolve_assignee(requested)
            if assignee_id != ticket.assigned_to_id:
                diff["assigned_to_id"] = (ticket.assigned_to_id, assignee_id)

        if not diff:
            return ticket

        ticket = await self.tickets.update(
            ticket.id, **{field: new for field, (_old, new) in diff.items()}
        )

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.TICKET_UPDATED,
            target_type=AuditTargetType.TICKET,
            target_id=ticket.id,
            details={
                "changes": {
                    field: {"from": _audit_value(old), "to": _audit_value(new)}
                    for field, (old, new) in diff.items()
                }
            },
        )
        logger.info(f"Ticket {ticket.id} updated by user {actor.id}: {sorted(diff)}")
        return ticket

    async def update_status(
        self,
        ticket_id: int,
        requested_status: TicketStatus,
        actor: SessionPrincipal,
    ) -> Ticket:
        """Status-only update; same rules as update_ticket."""
        return await self.update_ticket(ticket_id, {"status": requested_status}, actor)

    async def add_comment(
        self,
        ticket_id: int,
        actor: SessionPrincipal,
        content: str,
        visibility: Optional[CommentVisibility] = None,
    ) -> TicketComment:
        """
        Add a comment, then apply the reporter auto-transition.

        Department comments are always PUBLIC. If the author is the ticket's
        reporting department and the ticket is not closed, the ticket moves
        to WAITING_ON_ADMIN and that change is audited separately.

        Args:
            ticket_id: Ticket to comment on
            actor: Authoring principal
            content: Comment text
            visibility: Requested visibility (admins only)

        Returns:
            Created comment

        Raises:
            TicketNotFoundError: Ticket missing or out of scope
            ValidationError: Empty or oversized content
        """
        ticket = await self.get_ticket(ticket_id, actor)
        role = UserRole(actor.role)
        caps = TicketStateMachine.capabilities(role)

        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment cannot be empty", field="content")

        if not caps.can_post_internal:
            visibility = CommentVisibility.PUBLIC
        else:
            visibility = visibility or CommentVisibility.PUBLIC

        comment = await self.comments.create(
            ticket_id=ticket.id,
            author_id=actor.id,
            content=content,
            visibility=visibility,
        )

        await self.audit.record(
            actor_id=actor.id,
            action=AuditAction.COMMENT_ADDED,
            target_type=AuditTargetType.TICKET,
            target_id=ticket.id,
            details={"comment_id": comment.id, "visibility": visibility.value},
        )

        author_is_reporter = role in DEPARTMENT_ROLES and ticket.reporter_id == actor.id
        forced = TicketStateMachine.on_comment_posted(ticket.status, author_is_reporter)
        if forced is not None:
            previous = ticket.status
            await self.tickets.update(ticket.id, status=forced)
            await self.audit.record(
                actor_id=actor.id,
                action=AuditAction.TICKET_STATUS_AUTO_CHANGED,
                target_type=AuditTargetType.TICKET,
                target_id=ticket.id,
                details={
                    "changes": {"status": {"from": previous.value, "to": forced.value}},
                    "trigger": "reporter_comment",
                    "comment_id": comment.id,
                },
            )

        return comment

    @staticmethod
    def _parse(enum_class, value: Any, field: str):
        try:
            return enum_class(value)
        except ValueError:
            raise ValidationError(
                f"Invalid {field}: {value}",
                field=field,
                allowed=[member.value for member in enum_class],
            )
