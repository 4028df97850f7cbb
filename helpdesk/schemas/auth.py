"""
Pydantic schemas for authentication endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.core.constants import USERNAME_MAX_LENGTH
from helpdesk.models.user import UserRole


class LoginRequest(BaseModel):
    """
    Login request schema.

    WHY: Only presence and an upper bound are checked here. Format rules
    would reject some guesses with a 400 and others with a 401, which
    tells an attacker something.
    """

    username: str = Field(..., min_length=1, max_length=USERNAME_MAX_LENGTH)
    password: str = Field(..., min_length=1, max_length=128)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "jdoe",
                "password": "SecurePassword123!",
            }
        }
    )


class PrincipalResponse(BaseModel):
    """The minimal session principal."""

    id: int
    username: str
    email: str
    role: UserRole


class SessionResponse(BaseModel):
    """
    Login response.

    The token is a signed pointer to a server-side session; it stops
    working as soon as the session is destroyed.
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Session lifetime in seconds")
    user: PrincipalResponse
