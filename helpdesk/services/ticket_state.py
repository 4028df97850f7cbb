"""
Ticket state machine and role capabilities.

WHAT: Which status, priority and assignment changes each role may make,
and the one transition the system makes on its own.

WHY: Capabilities are a table keyed by every UserRole. Adding a role
without adding its row fails at import time instead of silently
defaulting to allow or deny.

The automatic transition is a named rule rather than a branch hidden in
the comment handler: when the reporting department comments on a ticket
that is not closed, the ticket moves to WAITING_ON_ADMIN. Closed tickets
stay closed; only an administrator reopens them.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from helpdesk.core.exceptions import InvalidStateTransitionError
from helpdesk.models.ticket import TicketStatus, TicketPriority
from helpdesk.models.user import UserRole


@dataclass(frozen=True)
class RoleCapabilities:
    """What one role may do to a ticket."""

    status_targets: FrozenSet[TicketStatus]
    priority_targets: FrozenSet[TicketPriority]
    can_assign: bool
    can_reopen: bool
    can_post_internal: bool


_ADMIN_CAPABILITIES = RoleCapabilities(
    status_targets=frozenset(TicketStatus),
    priority_targets=frozenset(TicketPriority),
    can_assign=True,
    can_reopen=True,
    can_post_internal=True,
)

ROLE_CAPABILITIES: Dict[UserRole, RoleCapabilities] = {
    UserRole.ADMIN: _ADMIN_CAPABILITIES,
    UserRole.SUPER_ADMIN: _ADMIN_CAPABILITIES,
    UserRole.DEPARTMENT: RoleCapabilities(
        status_targets=frozenset({TicketStatus.WAITING_ON_ADMIN, TicketStatus.CLOSED}),
        priority_targets=frozenset(),
        can_assign=False,
        can_reopen=False,
        can_post_internal=False,
    ),
}

_missing_roles = set(UserRole) - set(ROLE_CAPABILITIES)
if _missing_roles:
    raise RuntimeError(
        f"No ticket capabilities defined for roles: {sorted(r.value for r in _missing_roles)}"
    )


class TicketStateMachine:
    """Validate role-scoped ticket transitions."""

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def initial_priority(cls) -> TicketPriority:
        return TicketPriority.UNSET

    @classmethod
    def capabilities(cls, role: UserRole) -> RoleCapabilities:
        return ROLE_CAPABILITIES[UserRole(role)]

    @classmethod
    def can_set_status(cls, role: UserRole, current: TicketStatus, requested: TicketStatus) -> bool:
        caps = cls.capabilities(role)
        if requested not in caps.status_targets:
            return False
        if current == TicketStatus.CLOSED and requested != TicketStatus.CLOSED:
            return caps.can_reopen
        return True

    @classmethod
    def assert_status_change(
        cls, role: UserRole, current: TicketStatus, requested: TicketStatus
    ) -> None:
        if cls.can_set_status(role, current, requested):
            return
        if UserRole(role) == UserRole.DEPARTMENT:
            if requested not in cls.capabilities(role).status_targets:
                message = f"Department users cannot set status to: {requested.value}"
            else:
                message = "Closed tickets can only be reopened by an administrator"
        else:
            message = f"Cannot change status from {current.value} to {requested.value}"
        raise InvalidStateTransitionError(message, field="status", value=requested.value)

    @classmethod
    def assert_priority_change(cls, role: UserRole, requested: TicketPriority) -> None:
        if requested not in cls.capabilities(role).priority_targets:
            raise InvalidStateTransitionError(
                "Your role cannot set ticket priority",
                field="priority",
                value=requested.value,
            )

    @classmethod
    def assert_can_assign(cls, role: UserRole) -> None:
        if not cls.capabilities(role).can_assign:
            raise InvalidStateTransitionError(
                "Your role cannot assign tickets",
                field="assigned_to",
            )

    @classmethod
    def on_comment_posted(
        cls,
        current: TicketStatus,
        author_is_reporter: bool,
    ) -> Optional[TicketStatus]:
        """
        Status forced by a new comment, if any.

        A comment from the ticket's reporting department moves any
        non-closed ticket to WAITING_ON_ADMIN, whatever status it had.
        Other comments, and any comment on a closed ticket, force nothing.

        Args:
            current: Ticket status before the comment
            author_is_reporter: Whether the author is the ticket's reporter
                acting through the department portal

        Returns:
            The status to move to, or None for no change
        """
        if not author_is_reporter or current == TicketStatus.CLOSED:
            return None
        if current == TicketStatus.WAITING_ON_ADMIN:
            return None
        return TicketStatus.WAITING_ON_ADMIN
