"""
User Data Access Object (the credential store).

WHAT: Reads and writes account identity, credentials and authentication
state.

WHY: Authentication and the per-request live check both depend on exactly
what is stored here, so every read goes to the database and counters are
updated in SQL rather than read-modified-written in Python.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.dao.base import BaseDAO
from helpdesk.models.user import User, UserRole, UserStatus


class UserDAO(BaseDAO[User]):
    """
    Data Access Object for User model.

    Extends BaseDAO with credential and account-state operations.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_by_username_with_credentials(self, username: str) -> Optional[User]:
        """
        Get the account for a login attempt, including its password hash.

        WHY: populate_existing forces a fresh read of login_attempts and
        status even if the row is already in the session.

        Args:
            username: Username as typed by the caller

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(
            select(User)
            .where(User.username == username)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def username_exists(self, username: str) -> bool:
        result = await self.session.execute(
            select(User.id).where(User.username == username).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def email_exists(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        query = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_users(self, include_deleted: bool = False) -> List[User]:
        """
        List accounts for the console, oldest first.

        Args:
            include_deleted: Include soft-deleted accounts

        Returns:
            List of users
        """
        query = select(User)
        if not include_deleted:
            query = query.where(User.status != UserStatus.DELETED)
        result = await self.session.execute(query.order_by(User.id))
        return list(result.scalars().all())

    async def count_active_super_admins(self) -> int:
        """
        Count super admins that can still log in.

        WHY: The last active super admin may not be demoted, deactivated or
        deleted, otherwise nobody could manage accounts anymore.
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(User)
            .where(User.role == UserRole.SUPER_ADMIN, User.status == UserStatus.ACTIVE)
        )
        return result.scalar_one()

    # ========================================================================
    # Creation
    # ========================================================================

    async def create_user(
        self,
        username: str,
        email: str,
        hashed_password: str,
        role: UserRole,
        department: Optional[str] = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> User:
        """
        Create a new account.

        Args:
            username: Unique login name
            email: Unique email address
            hashed_password: bcrypt hash (never the plain password)
            role: Account role
            department: Department, only for department accounts
            status: Initial status

        Returns:
            Created User instance
        """
        return await self.create(
            username=username,
            email=email,
            hashed_password=hashed_password,
            role=role,
            department=department,
            status=status,
            login_attempts=0,
            password_changed_at=datetime.utcnow(),
        )

    # ========================================================================
    # Authentication state
    # ========================================================================

    async def increment_login_attempts(self, username: str) -> None:
        """
        Add one failed attempt to the account's counter.

        WHY: The increment runs in SQL (login_attempts = login_attempts + 1)
        so concurrent failures each count exactly once.

        Args:
            username: Username of the account that failed verification
        """
        await self.session.execute(
            update(User)
            .where(User.username == username)
            .values(login_attempts=User.login_attempts + 1)
            .execution_options(synchronize_session="fetch")
        )

    async def reset_login_attempts(self, user_id: int) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(login_attempts=0)
            .execution_options(synchronize_session="fetch")
        )

    async def update_last_login(self, user_id: int) -> None:
        """
        Record a successful login.

        Sets last_login_at to now and clears the failed-attempt counter.

        Args:
            user_id: Account that just authenticated
        """
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(last_login_at=datetime.utcnow(), login_attempts=0)
            .execution_options(synchronize_session="fetch")
        )

    async def update_status(self, user_id: int, status: UserStatus) -> Optional[User]:
        """
        Change an account's status.

        DELETED also stamps deleted_at; it is terminal and never cleared here.

        Args:
            user_id: Account to change
            status: New status

        Returns:
            Updated User if found, None otherwise
        """
        fields = {"status": status}
        if status == UserStatus.DELETED:
            fields["deleted_at"] = datetime.utcnow()
        return await self.update(user_id, **fields)

    async def update_password(self, user_id: int, new_hashed_password: str) -> Optional[User]:
        """
        Replace an account's password hash.

        Args:
            user_id: Account to change
            new_hashed_password: bcrypt hash of the new password

        Returns:
            Updated User if found, None otherwise
        """
        return await self.update(
            user_id,
            hashed_password=new_hashed_password,
            password_changed_at=datetime.utcnow(),
        )
