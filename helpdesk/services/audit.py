"""
Audit trail service.

WHAT: Service layer that appends audit entries and answers operator queries.

WHY: Every privileged mutation must leave an entry; a mutation whose entry
cannot be written must not quietly succeed. record() therefore raises
AuditWriteError on failure, and because it shares the caller's session,
the surrounding request's rollback also undoes the mutation.

HOW: Wraps AuditLogDAO and fills in IP address and user agent from the
RequestContextMiddleware when the caller does not pass them.
"""

import logging
from typing import Optional, Dict, Any, List, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.constants import AUDIT_QUERY_DEFAULT_LIMIT, AUDIT_QUERY_MAX_LIMIT
from helpdesk.core.exceptions import AuditWriteError
from helpdesk.dao.audit_log import AuditLogDAO
from helpdesk.models.audit_log import AuditLog, AuditAction, AuditTargetType
from helpdesk.middleware.request_context import get_request_context


logger = logging.getLogger(__name__)


class AuditService:
    """
    Service for recording and reading audit entries.

    Example:
        audit = AuditService(db)
        await audit.record(
            actor_id=admin.id,
            action=AuditAction.TICKET_UPDATED,
            target_type=AuditTargetType.TICKET,
            target_id=ticket.id,
            details={"changes": {"status": {"from": "open", "to": "closed"}}},
        )
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize audit service with database session.

        Args:
            session: The request's session; entries join its transaction
        """
        self.dao = AuditLogDAO(session)
        self._session = session

    def _get_context(self) -> tuple[Optional[str], Optional[str]]:
        """
        Get IP address and user agent from request context.

        Returns:
            Tuple of (ip_address, user_agent), both may be None
        """
        ctx = get_request_context()
        if ctx:
            return ctx.ip_address, ctx.user_agent
        return None, None

    async def record(
        self,
        actor_id: Optional[int],
        action: AuditAction,
        target_type: Optional[Union[AuditTargetType, str]] = None,
        target_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip: Optional[str] = None,
    ) -> AuditLog:
        """
        Append one audit entry.

        Args:
            actor_id: Who performed the action (None if anonymous)
            action: What happened
            target_type: Kind of record affected
            target_id: ID of the record affected
            details: Structured payload (never credential material)
            ip: Override the request-context IP

        Returns:
            The created AuditLog

        Raises:
            AuditWriteError: If the entry could not be persisted
        """
        ctx_ip, ctx_ua = self._get_context()

        if isinstance(target_type, AuditTargetType):
            target_type = target_type.value

        try:
            return await self.dao.create(
                action=action,
                actor_id=actor_id,
                target_type=target_type,
                target_id=target_id,
                details=details,
                ip_address=ip or ctx_ip,
                user_agent=ctx_ua,
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to write audit entry {action.value} "
                f"for {target_type}:{target_id} by actor {actor_id}: {e}"
            )
            raise AuditWriteError(action=action.value) from e

    async def find_by_actor(
        self,
        actor_id: int,
        limit: int = AUDIT_QUERY_DEFAULT_LIMIT,
    ) -> List[AuditLog]:
        """Entries written by one actor, newest first."""
        return await self.dao.get_by_actor(actor_id, limit=min(limit, AUDIT_QUERY_MAX_LIMIT))

    async def find_by_target(
        self,
        target_type: Union[AuditTargetType, str],
        target_id: int,
        limit: int = AUDIT_QUERY_DEFAULT_LIMIT,
    ) -> List[AuditLog]:
        """Forensic trail of one ticket or account, newest first."""
        if isinstance(target_type, AuditTargetType):
            target_type = target_type.value
        return await self.dao.get_by_target(
            target_type, target_id, limit=min(limit, AUDIT_QUERY_MAX_LIMIT)
        )
