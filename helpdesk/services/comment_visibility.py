"""
Role-scoped comment visibility.

WHAT: The single accessor for reading a ticket's comments.

WHY: Internal notes must never reach a department client, by any route.
The role is parsed against the closed role set first, and an unknown
value is an error rather than an empty list. The filtering itself is a
WHERE clause in TicketCommentDAO, so internal rows are never even loaded
for a department caller.
"""

from typing import List, Union

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import InvalidRoleError
from helpdesk.dao.ticket import TicketCommentDAO
from helpdesk.models.ticket import TicketComment
from helpdesk.models.user import UserRole, ADMIN_ROLES


class CommentVisibilityFilter:
    """Builds role-scoped comment queries."""

    def __init__(self, session: AsyncSession):
        self.dao = TicketCommentDAO(session)

    @staticmethod
    def parse_role(actor_role: Union[UserRole, str]) -> UserRole:
        """
        Validate a role value against the known roles.

        Raises:
            InvalidRoleError: If the value is not a known role
        """
        try:
            return UserRole(actor_role)
        except ValueError:
            raise InvalidRoleError(role=str(actor_role))

    async def list_visible_comments(
        self,
        ticket_id: int,
        actor_role: Union[UserRole, str],
    ) -> List[TicketComment]:
        """
        Comments of a ticket that the role may read, oldest first.

        Args:
            ticket_id: Ticket ID
            actor_role: Role of the reader

        Returns:
            All comments for admins; public comments only for departments

        Raises:
            InvalidRoleError: If actor_role is not a known role
        """
        role = self.parse_role(actor_role)
        return await self.dao.list_for_ticket(
            ticket_id,
            include_internal=role in ADMIN_ROLES,
        )
