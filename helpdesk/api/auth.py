"""
Authentication API endpoints.

WHY: These endpoints provide the session flow:
1. Login - Verify credentials and open a server-side session
2. Logout - Destroy the current session
3. Me - Return the current principal

Security:
- Every outcome is audit logged, including the reason for a rejection
- Rate limiting applied via RateLimitMiddleware
- Unknown user, locked, inactive and wrong password all return the same 401
"""

from fastapi import APIRouter, Depends, Request, status

from helpdesk.core.config import settings
from helpdesk.core.deps import get_auth_service, get_current_principal
from helpdesk.middleware.request_context import get_client_ip, get_user_agent
from helpdesk.schemas.auth import LoginRequest, PrincipalResponse, SessionResponse
from helpdesk.services.auth_service import AuthenticationService
from helpdesk.services.sessions import SessionPrincipal


router = APIRouter(prefix="/auth", tags=["authentication"])


def _principal_response(principal: SessionPrincipal) -> PrincipalResponse:
    return PrincipalResponse(**principal.to_dict())


@router.post(
    "/login",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in",
)
async def login(
    credentials: LoginRequest,
    request: Request,
    auth: AuthenticationService = Depends(get_auth_service),
) -> SessionResponse:
    """
    Authenticate with username and password.

    Returns:
        Session token and the minimal principal

    Raises:
        AuthenticationError (401): Any rejection, always the same message
    """
    token, principal = await auth.login(
        credentials.username,
        credentials.password,
        ip=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return SessionResponse(
        access_token=token,
        expires_in=settings.SESSION_TTL_MINUTES * 60,
        user=_principal_response(principal),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out",
)
async def logout(
    principal: SessionPrincipal = Depends(get_current_principal),
    auth: AuthenticationService = Depends(get_auth_service),
) -> None:
    """Destroy the current session; its token stops working immediately."""
    await auth.logout(principal)


@router.get(
    "/me",
    response_model=PrincipalResponse,
    summary="Current principal",
)
async def me(
    principal: SessionPrincipal = Depends(get_current_principal),
) -> PrincipalResponse:
    """The caller's identity, with the role as currently stored."""
    return _principal_response(principal)
