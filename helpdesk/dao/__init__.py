"""
Data access layer.

WHY: Every query the helpdesk runs lives in a DAO, built with SQLAlchemy
expressions and bound parameters. Services never assemble SQL themselves.
"""

from helpdesk.dao.base import BaseDAO
from helpdesk.dao.user import UserDAO
from helpdesk.dao.ticket import TicketDAO, TicketCommentDAO
from helpdesk.dao.audit_log import AuditLogDAO
from helpdesk.dao.session import SessionDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "TicketDAO",
    "TicketCommentDAO",
    "AuditLogDAO",
    "SessionDAO",
]
