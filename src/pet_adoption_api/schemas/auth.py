"""Authentication and user Pydantic v2 schemas.

Defines request/response schemas for registration, login, token refresh,
password change, and user administration.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

_ROLE_PATTERN = "^(user|volunteer|foster|staff|admin|super_admin)$"
_STATUS_PATTERN = "^(active|inactive|suspended|banned|pending_verification)$"


class RegisterRequest(BaseModel):
    """Self-service registration; new accounts always get the ``user`` role."""

    username: str = Field(min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=128)


class TokenResponse(BaseModel):
    """JWT token pair response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class UserCreateRequest(BaseModel):
    """Request to create a user with an explicit role (admin only)."""

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    role: str = Field(default="user", pattern=_ROLE_PATTERN)


class RoleUpdateRequest(BaseModel):
    role: str = Field(pattern=_ROLE_PATTERN)


class StatusUpdateRequest(BaseModel):
    """Administrative account status change; ``unlock`` clears any login lockout."""

    status: str | None = Field(default=None, pattern=_STATUS_PATTERN)
    email_verified: bool | None = None
    unlock: bool = False


class UserResponse(BaseModel):
    """User information response."""

    id: UUID
    username: str
    email: str
    role: str
    status: str
    email_verified: bool
    lock_until: datetime | None = None
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int
