"""
Base model class for all SQLAlchemy models.

WHY: Centralizing common model functionality (timestamps, ID, enum columns)
in one module keeps every table consistent.
"""

import enum
from datetime import datetime
from typing import Type

from sqlalchemy import Integer, DateTime, Enum as SQLEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    WHY: DeclarativeBase provides the foundation for SQLAlchemy 2.0 models
    with improved type hints and async support.
    """

    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    WHY: Mutable rows (accounts, tickets) need both timestamps.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class CreatedAtMixin:
    """
    Mixin for append-only rows (comments, audit entries).

    WHY: Rows that are never updated only carry their creation time.
    Indexed because these tables are always read in creation order.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )


class PrimaryKeyMixin:
    """
    Mixin to add an integer primary key to models.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)


def enum_column_type(enum_class: Type[enum.Enum], name: str) -> SQLEnum:
    """
    Build an Enum column type that stores member values.

    WHY: The stored strings ("waiting_on_admin", "super_admin") are the
    public vocabulary of the helpdesk, so rows hold values, not member names.
    """
    return SQLEnum(
        enum_class,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
