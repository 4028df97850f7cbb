"""
Server-side session model.

WHY: A signed token alone cannot be revoked. Each login creates one row
here and the token carries its id; deleting the row ends the session no
matter how long the token claims to be valid. Logout, the live account
check and administrative role/status changes all end sessions this way.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.core.constants import IP_ADDRESS_MAX_LENGTH
from helpdesk.models.base import Base


class UserSession(Base):
    """One live login session."""

    __tablename__ = "user_sessions"

    # Random, unguessable id (secrets.token_urlsafe)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(IP_ADDRESS_MAX_LENGTH), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at

    def __repr__(self) -> str:
        return f"<UserSession(user_id={self.user_id}, expires_at={self.expires_at})>"
