"""
Pydantic schemas for account management.

WHY: Password and username rules are checked here so a bad request fails
with field-level detail before it reaches UserService. The service checks
the same rules again, because it is also called from code that bypasses
the HTTP layer.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from helpdesk.core.constants import DEPARTMENT_MAX_LENGTH
from helpdesk.core.validators import password_policy_errors, username_errors
from helpdesk.models.user import UserRole, UserStatus


def _check_password(value: str) -> str:
    errors = password_policy_errors(value)
    if errors:
        raise ValueError("; ".join(errors))
    return value


class UserCreate(BaseModel):
    """New account, created by a super admin."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str
    email: EmailStr
    password: str = Field(..., max_length=128)
    role: UserRole
    department: Optional[str] = Field(None, max_length=DEPARTMENT_MAX_LENGTH)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        errors = username_errors(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class UserUpdate(BaseModel):
    """
    Partial account update.

    Only fields present in the request are applied.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    department: Optional[str] = Field(None, max_length=DEPARTMENT_MAX_LENGTH)
    status: Optional[UserStatus] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class PasswordReset(BaseModel):
    """Administrative password reset."""

    new_password: str = Field(..., max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class UserResponse(BaseModel):
    """
    Account data for the console.

    WHY: Never includes the password hash.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: UserRole
    department: Optional[str] = None
    status: UserStatus
    login_attempts: int
    last_login_at: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None
    created_at: datetime
