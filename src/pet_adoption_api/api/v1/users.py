"""User administration endpoints.

GET /users, POST /users, PATCH /users/{id}/role, PATCH /users/{id}/status.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.core.dependencies import get_async_session, get_request_ip, require_role
from pet_adoption_api.core.errors import ForbiddenError
from pet_adoption_api.lib.guard.permissions import can_assign_role
from pet_adoption_api.models.user import User, UserRole
from pet_adoption_api.schemas.auth import (
    RoleUpdateRequest,
    StatusUpdateRequest,
    UserCreateRequest,
    UserResponse,
)
from pet_adoption_api.schemas.common import ErrorResponse, PaginationMeta, PaginationParams
from pet_adoption_api.services import auth_service

users_router = APIRouter(prefix="/users", tags=["users"])

_require_admin = require_role(UserRole.ADMIN, UserRole.SUPER_ADMIN)


@users_router.get("", response_model=dict)
async def list_users(
    _current_user: Annotated[User, Depends(_require_admin)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
) -> dict:
    """List all users (admin only)."""
    users, total = await auth_service.list_users(session, pagination.page, pagination.page_size)
    return {
        "items": [UserResponse.model_validate(u) for u in users],
        "pagination": PaginationMeta.build(total, pagination.page, pagination.page_size),
    }


@users_router.post("", response_model=UserResponse, status_code=201, responses={409: {"model": ErrorResponse}})
async def create_user(
    request: UserCreateRequest,
    current_user: Annotated[User, Depends(_require_admin)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> User:
    """Create a user with a role the caller is allowed to grant (admin only)."""
    if not can_assign_role(current_user.role, UserRole.USER, request.role):
        raise ForbiddenError(f"Role '{current_user.role}' may not create '{request.role}' accounts")
    return await auth_service.create_user(session, request)


@users_router.patch("/{user_id}/role", response_model=UserResponse, responses={403: {"model": ErrorResponse}})
async def update_role(
    user_id: uuid.UUID,
    request: RoleUpdateRequest,
    current_user: Annotated[User, Depends(_require_admin)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    client_ip: Annotated[str, Depends(get_request_ip)],
) -> User:
    """Grant or revoke a role; super_admin is only granted or revoked by super_admin."""
    return await auth_service.update_role(session, current_user, user_id, request.role, request_ip=client_ip)


@users_router.patch("/{user_id}/status", response_model=UserResponse, responses={403: {"model": ErrorResponse}})
async def update_status(
    user_id: uuid.UUID,
    request: StatusUpdateRequest,
    current_user: Annotated[User, Depends(_require_admin)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    client_ip: Annotated[str, Depends(get_request_ip)],
) -> User:
    """Suspend, ban, reactivate or unlock an account (admin only)."""
    return await auth_service.update_status(
        session,
        current_user,
        user_id,
        status=request.status,
        email_verified=request.email_verified,
        unlock=request.unlock,
        request_ip=client_ip,
    )
