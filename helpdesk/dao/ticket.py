"""
Ticket Data Access Objects.

WHAT: Database operations for tickets and ticket comments.

WHY: Keeping the scoping rules in the queries themselves (reporter-owned
tickets, public-only comments) means no caller can forget to filter.
A department client's view is narrowed in SQL, before any row leaves the
database.
"""

from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.dao.base import BaseDAO
from helpdesk.models.ticket import (
    Ticket,
    TicketComment,
    TicketStatus,
    TicketPriority,
    CommentVisibility,
)


class TicketDAO(BaseDAO[Ticket]):
    """
    Data Access Object for tickets.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Ticket, session)

    async def get_for_reporter(self, ticket_id: int, reporter_id: int) -> Optional[Ticket]:
        """
        Get a ticket only if the given account reported it through the portal.

        WHY: Admin-created tickets may name a department account as reporter
        for bookkeeping but are not part of that department's portal view.

        Args:
            ticket_id: Ticket ID
            reporter_id: Account that must own the ticket

        Returns:
            Ticket if found and owned, None otherwise
        """
        result = await self.session.execute(
            select(Ticket)
            .where(
                Ticket.id == ticket_id,
                Ticket.reporter_id == reporter_id,
                Ticket.is_admin_created.is_(False),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        skip: int = 0,
        limit: int = 50,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        assigned_to_id: Optional[int] = None,
        reporter_id: Optional[int] = None,
        include_admin_created: bool = True,
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets with filtering and pagination, newest first.

        Args:
            skip: Number of records to skip
            limit: Maximum records to return
            status: Filter by status
            priority: Filter by priority
            assigned_to_id: Filter by assignee
            reporter_id: Filter by reporting account
            include_admin_created: When False, hide admin-created tickets

        Returns:
            Tuple of (tickets, total_count)
        """
        conditions = []
        if status is not None:
            conditions.append(Ticket.status == status)
        if priority is not None:
            conditions.append(Ticket.priority == priority)
        if assigned_to_id is not None:
            conditions.append(Ticket.assigned_to_id == assigned_to_id)
        if reporter_id is not None:
            conditions.append(Ticket.reporter_id == reporter_id)
        if not include_admin_created:
            conditions.append(Ticket.is_admin_created.is_(False))

        count_query = select(func.count()).select_from(Ticket).where(*conditions)
        total = (await self.session.execute(count_query)).scalar_one()

        query = (
            select(Ticket)
            .where(*conditions)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total


class TicketCommentDAO:
    """
    Data Access Object for ticket comments.

    Comments are append-only, so there is no update or delete.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        ticket_id: int,
        author_id: Optional[int],
        content: str,
        visibility: CommentVisibility = CommentVisibility.PUBLIC,
    ) -> TicketComment:
        """
        Create a comment.

        Args:
            ticket_id: Ticket to comment on
            author_id: Authoring account
            content: Comment text
            visibility: PUBLIC or INTERNAL

        Returns:
            Created comment
        """
        comment = TicketComment(
            ticket_id=ticket_id,
            author_id=author_id,
            content=content,
            visibility=visibility,
        )
        self.session.add(comment)
        await self.session.flush()
        await self.session.refresh(comment)
        return comment

    async def list_for_ticket(
        self,
        ticket_id: int,
        include_internal: bool = False,
    ) -> List[TicketComment]:
        """
        List comments for a ticket in reading order (oldest first).

        WHY: The visibility restriction is part of the WHERE clause, so
        internal rows are never loaded when include_internal is False.

        Args:
            ticket_id: Ticket ID
            include_internal: Include INTERNAL comments

        Returns:
            List of comments
        """
        query = select(TicketComment).where(TicketComment.ticket_id == ticket_id)

        if not include_internal:
            query = query.where(TicketComment.visibility == CommentVisibility.PUBLIC)

        query = query.order_by(TicketComment.created_at.asc(), TicketComment.id.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())
