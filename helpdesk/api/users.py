"""
Account management API endpoints (super admin only).
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from helpdesk.core.deps import get_user_service, require_super_admin
from helpdesk.schemas.user import PasswordReset, UserCreate, UserResponse, UserUpdate
from helpdesk.services.sessions import SessionPrincipal
from helpdesk.services.user_service import UserService


router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    include_deleted: bool = Query(False),
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> List[UserResponse]:
    users = await service.list_users(admin, include_deleted=include_deleted)
    return [UserResponse.model_validate(u) for u in users]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """
    Create an account.

    Raises:
        ResourceAlreadyExistsError (409): Username or email taken
        ValidationError (400): Department missing for a department account,
            or set for any other role
    """
    user = await service.create_user(data, admin)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await service.get_user(user_id, admin)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """
    Partial update. Role and status changes log the account out everywhere.

    Raises:
        BusinessRuleViolation (422): Would remove the last active super admin
    """
    user = await service.update_user(user_id, data.changes(), admin)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=UserResponse)
async def delete_user(
    user_id: int,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Soft delete; the row stays for the audit trail."""
    user = await service.delete_user(user_id, admin)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/reset-password", response_model=UserResponse)
async def reset_password(
    user_id: int,
    data: PasswordReset,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await service.reset_password(user_id, data.new_password, admin)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/toggle-status", response_model=UserResponse)
async def toggle_status(
    user_id: int,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await service.toggle_user_status(user_id, admin)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/unlock", response_model=UserResponse)
async def unlock_user(
    user_id: int,
    admin: SessionPrincipal = Depends(require_super_admin),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Clear the failed-login counter."""
    user = await service.unlock_user(user_id, admin)
    return UserResponse.model_validate(user)
