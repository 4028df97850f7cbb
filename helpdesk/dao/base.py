"""
Shared persistence operations for mutable tables.

WHAT: BaseDAO gives users, tickets and sessions the same create / fetch /
update primitives. Audit entries and comments are append-only and do not
extend it.

HOW: Every DAO receives the request's AsyncSession, so a service that
touches several tables commits them together. Writes flush but never
commit; the request boundary (get_db) owns the transaction.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.base import Base


ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """Create, fetch and update rows of one model."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **values: Any) -> ModelType:
        """
        Insert a row and return it with server defaults loaded.

        Raises:
            IntegrityError: A unique or foreign key constraint failed
        """
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """
        Fetch a row by primary key, bypassing the identity map.

        Account state drives authorization, so a row loaded earlier in the
        same session is overwritten with what is stored now.
        """
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update(self, id: Any, **values: Any) -> Optional[ModelType]:
        """
        Set the given columns on a row.

        Returns:
            The refreshed row, or None if no row has that id
        """
        row = await self.get_by_id(id)
        if row is None:
            return None

        for column, value in values.items():
            setattr(row, column, value)

        await self.session.flush()
        await self.session.refresh(row)
        return row
