"""FastAPI dependency injection for database sessions, auth, and access control.

Provides get_async_session, get_current_user (the session guard), role and
operation checks, and per-user throttles for the adoption actions.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.core.config import Settings, get_settings
from pet_adoption_api.core.database import get_session_factory
from pet_adoption_api.core.errors import ForbiddenError, RateLimitedError
from pet_adoption_api.core.rate_limits import TOKEN, get_limiters
from pet_adoption_api.lib.guard.limiter import LimiterRegistry
from pet_adoption_api.lib.guard.permissions import Operation, authorize
from pet_adoption_api.lib.guard.session import SessionGuard
from pet_adoption_api.models.user import User

_ACTION_LABELS = {
    "adoption_create": "adoption application",
    "adoption_update": "adoption update",
}


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_limiter_registry() -> LimiterRegistry:
    """Return the process-wide limiter registry."""
    return get_limiters()


def get_request_ip(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """Client IP as seen through the trusted proxy headers."""
    from pet_adoption_api.api.middleware import get_client_ip

    return get_client_ip(request, settings.trusted_proxy_header_list)


async def get_current_user(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    limiters: Annotated[LimiterRegistry, Depends(get_limiter_registry)],
    client_ip: Annotated[str, Depends(get_request_ip)],
) -> User:
    """Authenticate the Authorization header and return the user.

    Args:
        request: The incoming request.
        session: The database session.
        settings: Application settings.
        limiters: Limiter registry; the ``token`` limiter counts rejected credentials.
        client_ip: Caller IP, the limiter key.

    Returns:
        The authenticated User model instance.

    Raises:
        RateLimitedError: Too many rejected credentials from this client.
        CredentialError: Missing, malformed, invalid, expired or stale token.
        AccountInvalidError: The account may not authenticate.
    """
    from pet_adoption_api.services.auth_service import load_identity

    guard: SessionGuard[User] = SessionGuard(
        settings.jwt_secret_key,
        settings.jwt_algorithm,
        limiters[TOKEN],
        min_bare_length=settings.bare_token_min_length,
    )
    context = await guard.authenticate(
        request.headers.get("Authorization"),
        client_ip,
        lambda subject: load_identity(session, subject),
    )
    return context.user


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific user roles.

    Args:
        *roles: Allowed role names (e.g., "admin", "super_admin").

    Returns:
        A FastAPI dependency function that validates the user's role.
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            raise ForbiddenError(f"Role '{current_user.role}' does not have access to this resource")
        return current_user

    return role_checker


def require_operation(operation: Operation) -> Callable[..., Any]:
    """Factory for a dependency that runs the role → operation check."""

    async def operation_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        authorize(current_user, operation)
        return current_user

    return operation_checker


def throttle(action: str, operation: Operation) -> Callable[..., Any]:
    """Factory for a dependency that authorizes ``operation`` and counts one ``action`` for the user.

    The limiter is keyed by user id, so one client cannot exhaust another's allowance.
    """

    async def throttled(
        current_user: Annotated[User, Depends(require_operation(operation))],
        limiters: Annotated[LimiterRegistry, Depends(get_limiter_registry)],
    ) -> User:
        decision = limiters[action].hit(str(current_user.id))
        if not decision.allowed:
            raise RateLimitedError(_ACTION_LABELS.get(action, action), decision.retry_after_seconds)
        return current_user

    return throttled
