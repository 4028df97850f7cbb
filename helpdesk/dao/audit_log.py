"""
Audit Log Data Access Object (DAO).

WHAT: Data access layer for the audit trail.

WHY: Audit entries are evidence, so this DAO only appends and reads.
update() and delete() exist solely to fail loudly if anything tries.

HOW: Does not extend BaseDAO, so no generic mutator is inherited by
accident.
"""

from typing import Optional, List, Dict, Any, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.constants import AUDIT_QUERY_DEFAULT_LIMIT
from helpdesk.core.exceptions import AuditLogImmutableError
from helpdesk.models.audit_log import AuditLog, AuditAction


class AuditLogDAO:
    """
    Data Access Object for audit log operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        action: Union[AuditAction, str],
        actor_id: Optional[int] = None,
        target_type: Optional[str] = None,
        target_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """
        Append an audit entry.

        Args:
            action: What happened
            actor_id: Who did it (None for anonymous or unknown actors)
            target_type: Kind of record affected ("ticket", "user")
            target_id: ID of the record affected
            details: Structured payload
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            The created AuditLog entry

        Raises:
            SQLAlchemyError: If the insert fails
        """
        log = AuditLog(
            actor_id=actor_id,
            action=action.value if isinstance(action, AuditAction) else action,
            target_type=target_type,
            target_id=target_id,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(log)
        await self.session.flush()
        await self.session.refresh(log)
        return log

    async def get_by_actor(
        self,
        actor_id: int,
        limit: int = AUDIT_QUERY_DEFAULT_LIMIT,
    ) -> List[AuditLog]:
        """
        Get entries written by one actor, newest first.

        Args:
            actor_id: Acting account
            limit: Maximum entries to return

        Returns:
            List of audit entries
        """
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.actor_id == actor_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_target(
        self,
        target_type: str,
        target_id: int,
        limit: int = AUDIT_QUERY_DEFAULT_LIMIT,
    ) -> List[AuditLog]:
        """
        Get the forensic trail of one record, newest first.

        Args:
            target_type: Kind of record ("ticket", "user")
            target_id: Record ID
            limit: Maximum entries to return

        Returns:
            List of audit entries
        """
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.target_type == target_type, AuditLog.target_id == target_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_action(
        self,
        action: Union[AuditAction, str],
        limit: int = AUDIT_QUERY_DEFAULT_LIMIT,
    ) -> List[AuditLog]:
        value = action.value if isinstance(action, AuditAction) else action
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.action == value)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update(self, *args: Any, **kwargs: Any) -> None:
        """
        Audit entries are immutable.

        Raises:
            AuditLogImmutableError: Always
        """
        raise AuditLogImmutableError()

    async def delete(self, *args: Any, **kwargs: Any) -> None:
        """
        Audit entries are immutable.

        Raises:
            AuditLogImmutableError: Always
        """
        raise AuditLogImmutableError()
