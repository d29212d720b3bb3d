"""Authentication and user management service.

Handles login with per-client throttling and progressive account lockout,
registration, token generation and refresh, password changes, and the
administrative role/status changes.
"""

import uuid
from datetime import UTC, datetime, timedelta

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.core.config import Settings
from pet_adoption_api.core.errors import (
    AccountInvalidError,
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    CredentialError,
    ForbiddenError,
    RateLimitedError,
    UserNotFoundError,
    ValidationFailedError,
)
from pet_adoption_api.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from pet_adoption_api.lib.guard.account import InvalidReason, is_locked, is_token_still_valid, validate_account
from pet_adoption_api.lib.guard.credentials import CredentialFailure, verify_credential
from pet_adoption_api.lib.guard.limiter import AttemptLimiter
from pet_adoption_api.lib.guard.permissions import can_assign_role, role_rank
from pet_adoption_api.models.user import AccountStatus, User, UserRole
from pet_adoption_api.schemas.auth import RegisterRequest, TokenResponse, UserCreateRequest
from pet_adoption_api.services import audit_service

_INVALID_LOGIN_MESSAGE = "Invalid username or password"

_ACCOUNT_MESSAGES: dict[str, str] = {
    InvalidReason.SUSPENDED: "Account is suspended",
    InvalidReason.BANNED: "Account is banned",
    InvalidReason.INACTIVE: "Account is inactive",
    InvalidReason.EMAIL_NOT_VERIFIED: "Email address has not been verified",
    InvalidReason.DELETION_REQUESTED: "Account is scheduled for deletion",
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Get a user by ID, soft-deleted users included."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def load_identity(session: AsyncSession, subject: str) -> User | None:
    """Resolve a token subject (a user id string) to a user."""
    try:
        user_id = uuid.UUID(subject)
    except ValueError:
        return None
    return await get_user(session, user_id)


async def get_user_by_login(session: AsyncSession, login: str) -> User | None:
    """Find a live user by username or email."""
    result = await session.execute(
        select(User).where(or_(User.username == login, User.email == login), User.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    """List users with pagination.

    Args:
        session: The database session.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (users list, total count).
    """
    count_result = await session.execute(select(func.count(User.id)).where(User.deleted_at.is_(None)))
    total = count_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(User).where(User.deleted_at.is_(None)).offset(offset).limit(page_size).order_by(User.created_at)
    )
    users = list(result.scalars().all())
    return users, total


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def lockout_duration(settings: Settings, lockout_count: int) -> timedelta:
    """Lockout for the next lock: the base duration doubled per earlier lockout, capped."""
    minutes = min(settings.login_lockout_minutes * 2**lockout_count, settings.account_lockout_max_minutes)
    return timedelta(minutes=minutes)


def register_failed_login(user: User, settings: Settings, now: datetime | None = None) -> bool:
    """Count a failed password for ``user``, locking the account when the window is exhausted.

    Returns:
        True if this failure locked the account.
    """
    now = now or datetime.now(UTC)
    window = timedelta(minutes=settings.login_window_minutes)
    if user.first_failed_login_at is None or now - user.first_failed_login_at >= window:
        user.first_failed_login_at = now
        user.failed_login_attempts = 1
    else:
        user.failed_login_attempts += 1

    if user.failed_login_attempts < settings.login_max_attempts:
        return False

    duration = lockout_duration(settings, user.lockout_count)
    user.lock_until = now + duration
    user.lockout_count += 1
    user.failed_login_attempts = 0
    user.first_failed_login_at = None
    logger.warning(f"Account {user.id} locked for {duration} after repeated failed logins")
    return True


def clear_login_failures(user: User) -> None:
    user.failed_login_attempts = 0
    user.first_failed_login_at = None
    user.lockout_count = 0
    user.lock_until = None


async def authenticate_user(
    session: AsyncSession,
    username: str,
    password: str,
    *,
    settings: Settings,
    limiter: AttemptLimiter,
    client_ip: str,
) -> User:
    """Authenticate a user by username (or email) and password.

    Failures are counted twice: per client IP in ``limiter`` and per account
    on the user row. The IP limit answers 429; the account lock answers 423.

    Args:
        session: The database session.
        username: Username or email address.
        password: The plaintext password.
        settings: Application settings.
        limiter: The ``login`` limiter.
        client_ip: Limiter key for the caller.

    Returns:
        The authenticated User.

    Raises:
        RateLimitedError: Too many failed logins from ``client_ip``.
        AccountLockedError: The account is locked.
        AuthenticationError: Unknown user or wrong password.
        AccountInvalidError: The account may not log in.
    """
    decision = limiter.check(client_ip)
    if not decision.allowed:
        logger.warning(f"Login throttled for {client_ip}")
        raise RateLimitedError("login", decision.retry_after_seconds)

    user = await get_user_by_login(session, username)
    now = datetime.now(UTC)
    if user is not None and is_locked(user, now):
        assert user.lock_until is not None
        retry_after = max(1, int((user.lock_until - now).total_seconds()))
        logger.warning(f"Login refused for locked account {user.id}")
        raise AccountLockedError(user.lock_until, retry_after)

    if user is None or not verify_password(password, user.hashed_password):
        attempts = limiter.record_failure(client_ip)
        if user is not None:
            register_failed_login(user, settings, now)
            await session.commit()
        logger.warning(f"Failed login for '{username}' from {client_ip} (attempt {attempts})")
        raise AuthenticationError(_INVALID_LOGIN_MESSAGE)

    check = validate_account(user, now)
    if not check.valid:
        reason = check.reason or InvalidReason.NOT_FOUND
        logger.warning(f"Login refused for account {user.id}: {reason}")
        raise AccountInvalidError(reason, _ACCOUNT_MESSAGES.get(reason, _INVALID_LOGIN_MESSAGE))

    limiter.record_success(client_ip)
    clear_login_failures(user)
    user.last_login_at = now
    await session.commit()
    logger.info(f"User {user.username} logged in")
    return user


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


async def _ensure_unique(session: AsyncSession, username: str, email: str) -> None:
    existing = await session.execute(select(User).where((User.username == username) | (User.email == email)))
    if existing.scalars().first() is not None:
        msg = "Username or email already exists"
        raise ConflictError(msg)


async def create_user(session: AsyncSession, request: UserCreateRequest) -> User:
    """Create a new user with an explicit role.

    Raises:
        ConflictError: If username or email already exists.
    """
    await _ensure_unique(session, request.username, request.email)

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
        role=request.role,
        status=AccountStatus.ACTIVE,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created user {user.username} with role {user.role}")
    return user


async def register_user(
    session: AsyncSession,
    request: RegisterRequest,
    *,
    limiter: AttemptLimiter,
    client_ip: str,
) -> User:
    """Self-service registration, throttled per client IP.

    Raises:
        RateLimitedError: Too many registrations from ``client_ip``.
        ConflictError: If username or email already exists.
    """
    decision = limiter.hit(client_ip)
    if not decision.allowed:
        logger.warning(f"Registration throttled for {client_ip}")
        raise RateLimitedError("registration", decision.retry_after_seconds)

    return await create_user(
        session,
        UserCreateRequest(
            username=request.username,
            email=request.email,
            password=request.password,
            role=UserRole.USER,
        ),
    )


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def generate_tokens(user: User, settings: Settings) -> TokenResponse:
    """Generate access and refresh tokens for a user.

    Args:
        user: The authenticated user.
        settings: Application settings.

    Returns:
        Token response with access and refresh tokens.
    """
    access_token = create_access_token(
        subject=str(user.id),
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_access_token_expire_minutes,
    )
    refresh_token = create_refresh_token(
        subject=str(user.id),
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_days=settings.jwt_refresh_token_expire_days,
    )
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


async def refresh_access_token(
    session: AsyncSession,
    refresh_token_str: str,
    settings: Settings,
) -> TokenResponse:
    """Exchange a refresh token for a new token pair.

    The account gate and the password-change check apply exactly as they do
    to access tokens.

    Raises:
        CredentialError: Invalid, non-refresh or stale token.
        AccountInvalidError: The account may not authenticate.
    """
    claims = verify_credential(
        refresh_token_str,
        settings.jwt_secret_key,
        settings.jwt_algorithm,
        min_bare_length=settings.bare_token_min_length,
    )
    if claims.token_type != "refresh":
        raise CredentialError(CredentialFailure.MALFORMED, "Token is not a refresh token")

    user = await load_identity(session, claims.subject)
    check = validate_account(user)
    if user is None or not check.valid:
        reason = check.reason or InvalidReason.NOT_FOUND
        logger.warning(f"Refresh refused for subject {claims.subject}: {reason}")
        raise AccountInvalidError(reason, _ACCOUNT_MESSAGES.get(reason, "Could not validate credentials"))

    if not is_token_still_valid(claims, user):
        raise CredentialError(CredentialFailure.STALE)

    return generate_tokens(user, settings)


async def change_password(
    session: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
    settings: Settings,
) -> TokenResponse:
    """Change a user's password and return a fresh token pair.

    Every token issued before the change stops working.

    Raises:
        ValidationFailedError: The current password is wrong.
    """
    if not verify_password(current_password, user.hashed_password):
        raise ValidationFailedError([{"field": "current_password", "message": "Current password is incorrect"}])

    user.hashed_password = hash_password(new_password)
    user.password_changed_at = datetime.now(UTC)
    await session.commit()
    logger.info(f"User {user.username} changed their password")
    return generate_tokens(user, settings)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


async def _get_target(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await get_user(session, user_id)
    if user is None or user.deleted_at is not None:
        raise UserNotFoundError(user_id)
    return user


async def update_role(
    session: AsyncSession,
    actor: User,
    user_id: uuid.UUID,
    new_role: str,
    *,
    request_ip: str | None = None,
) -> User:
    """Grant or revoke a role.

    Raises:
        UserNotFoundError: Unknown user.
        ForbiddenError: The actor may not make this change.
    """
    target = await _get_target(session, user_id)
    if target.id == actor.id:
        raise ForbiddenError("You cannot change your own role")
    if not can_assign_role(actor.role, target.role, new_role):
        raise ForbiddenError(f"Role '{actor.role}' may not change '{target.role}' to '{new_role}'")

    old_role = target.role
    target.role = new_role
    await audit_service.log_action(
        session,
        user_id=actor.id,
        username=actor.username,
        action="role_change",
        resource_type="user",
        resource_ids=[str(target.id)],
        request_ip=request_ip,
        request_metadata={"from": old_role, "to": new_role},
        commit=False,
    )
    await session.commit()
    await session.refresh(target)
    logger.info(f"User {actor.username} changed role of {target.username}: {old_role} -> {new_role}")
    return target


async def update_status(
    session: AsyncSession,
    actor: User,
    user_id: uuid.UUID,
    *,
    status: str | None = None,
    email_verified: bool | None = None,
    unlock: bool = False,
    request_ip: str | None = None,
) -> User:
    """Change an account's status, verification flag or lockout.

    Only users of strictly lower rank may be changed, except by super_admin.

    Raises:
        UserNotFoundError: Unknown user.
        ForbiddenError: The actor may not change this account.
    """
    if role_rank(actor.role) < role_rank(UserRole.ADMIN):
        raise ForbiddenError("Only administrators may change account status")
    target = await _get_target(session, user_id)
    if target.id == actor.id:
        raise ForbiddenError("You cannot change your own account status")
    if actor.role != UserRole.SUPER_ADMIN and role_rank(target.role) >= role_rank(actor.role):
        raise ForbiddenError("You may only change accounts below your own role")

    changes: dict[str, object] = {}
    if status is not None and status != target.status:
        changes["status"] = [target.status, status]
        target.status = status
    if email_verified is not None and email_verified != target.email_verified:
        changes["email_verified"] = [target.email_verified, email_verified]
        target.email_verified = email_verified
    if unlock:
        changes["unlocked"] = True
        clear_login_failures(target)

    await audit_service.log_action(
        session,
        user_id=actor.id,
        username=actor.username,
        action="status_change",
        resource_type="user",
        resource_ids=[str(target.id)],
        request_ip=request_ip,
        request_metadata=changes,
        commit=False,
    )
    await session.commit()
    await session.refresh(target)
    logger.info(f"User {actor.username} updated account {target.username}: {changes}")
    return target


async def unlock_user(session: AsyncSession, user: User) -> User:
    """Clear a user's lockout and failed-login counters."""
    clear_login_failures(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Unlocked account {user.username}")
    return user
