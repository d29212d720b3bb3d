"""Authentication API endpoints.

GET /health, GET /info, POST /auth/register, POST /auth/login,
POST /auth/refresh, GET /auth/me, POST /auth/change-password.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api import __version__
from pet_adoption_api.core.config import Settings, get_settings
from pet_adoption_api.core.dependencies import (
    get_async_session,
    get_current_user,
    get_limiter_registry,
    get_request_ip,
)
from pet_adoption_api.core.rate_limits import LOGIN, REGISTER
from pet_adoption_api.lib.guard.limiter import LimiterRegistry
from pet_adoption_api.models.user import User
from pet_adoption_api.schemas.auth import (
    ChangePasswordRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from pet_adoption_api.schemas.common import ErrorResponse
from pet_adoption_api.services import auth_service

router = APIRouter(tags=["auth"])


@router.get("/health", status_code=200)
async def health_check() -> dict:
    """Health check endpoint (no authentication required)."""
    return {"status": "healthy"}


@router.get("/info", status_code=200)
async def info(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Return application version and environment."""
    return {"version": __version__, "environment": settings.environment}


@router.post(
    "/auth/register",
    response_model=TokenResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def register(
    request: RegisterRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    limiters: Annotated[LimiterRegistry, Depends(get_limiter_registry)],
    client_ip: Annotated[str, Depends(get_request_ip)],
) -> TokenResponse:
    """Create an account with the ``user`` role and log it in."""
    user = await auth_service.register_user(session, request, limiter=limiters[REGISTER], client_ip=client_ip)
    return auth_service.generate_tokens(user, settings)


@router.post(
    "/auth/login",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}, 423: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    limiters: Annotated[LimiterRegistry, Depends(get_limiter_registry)],
    client_ip: Annotated[str, Depends(get_request_ip)],
) -> TokenResponse:
    """Authenticate user and return JWT tokens."""
    user = await auth_service.authenticate_user(
        session,
        form_data.username,
        form_data.password,
        settings=settings,
        limiter=limiters[LOGIN],
        client_ip=client_ip,
    )
    return auth_service.generate_tokens(user, settings)


@router.post("/auth/refresh", response_model=TokenResponse, responses={401: {"model": ErrorResponse}})
async def refresh_token(
    request: RefreshRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Refresh an access token using a refresh token."""
    return await auth_service.refresh_access_token(session, request.refresh_token, settings)


@router.get("/auth/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the currently authenticated user's profile."""
    return current_user


@router.post("/auth/change-password", response_model=TokenResponse, responses={422: {"model": ErrorResponse}})
async def change_password(
    request: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Change the password; tokens issued before the change stop working."""
    return await auth_service.change_password(
        session,
        current_user,
        request.current_password,
        request.new_password,
        settings,
    )
