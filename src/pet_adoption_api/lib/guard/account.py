"""Account gate: may this identity authenticate right now?

Runs on every authenticated request, not only at login, so a suspension or
lockout applied mid-session takes effect on the caller's next request.
"""

import enum
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from pet_adoption_api.lib.guard.credentials import TokenClaims
from pet_adoption_api.models.user import AccountStatus, UserRole

# Roles allowed in before their email address is verified.
_VERIFICATION_EXEMPT_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


class AccountIdentity(Protocol):
    """The account attributes the gate reads (satisfied by ``models.User``)."""

    role: str
    status: str
    email_verified: bool
    lock_until: datetime | None
    password_changed_at: datetime | None
    deletion_requested: bool
    deleted_at: datetime | None


class InvalidReason(enum.StrEnum):
    NOT_FOUND = "not_found"
    LOCKED = "locked"
    SUSPENDED = "suspended"
    BANNED = "banned"
    INACTIVE = "inactive"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    DELETION_REQUESTED = "deletion_requested"


@dataclass(frozen=True)
class AccountCheck:
    """Outcome of ``validate_account``."""

    valid: bool
    reason: InvalidReason | None = None
    lock_until: datetime | None = None

    @classmethod
    def ok(cls) -> "AccountCheck":
        return cls(valid=True)

    @classmethod
    def invalid(cls, reason: InvalidReason, lock_until: datetime | None = None) -> "AccountCheck":
        return cls(valid=False, reason=reason, lock_until=lock_until)


def is_locked(user: AccountIdentity, now: datetime | None = None) -> bool:
    """True while ``lock_until`` lies in the future."""
    now = now or datetime.now(UTC)
    return user.lock_until is not None and user.lock_until > now


def validate_account(user: AccountIdentity | None, now: datetime | None = None) -> AccountCheck:
    """Decide whether an account may authenticate.

    Checks run in a fixed order so the most severe reason wins: missing or
    soft-deleted, locked, banned, suspended, inactive, deletion requested,
    then email verification (waived for admin and super_admin).

    Args:
        user: The loaded identity, or None when it does not exist.
        now: Reference time (defaults to the current UTC time).

    Returns:
        ``AccountCheck.ok()`` or ``AccountCheck.invalid(reason)``.
    """
    now = now or datetime.now(UTC)
    if user is None or user.deleted_at is not None:
        return AccountCheck.invalid(InvalidReason.NOT_FOUND)
    if is_locked(user, now):
        return AccountCheck.invalid(InvalidReason.LOCKED, lock_until=user.lock_until)
    if user.status == AccountStatus.BANNED:
        return AccountCheck.invalid(InvalidReason.BANNED)
    if user.status == AccountStatus.SUSPENDED:
        return AccountCheck.invalid(InvalidReason.SUSPENDED)
    if user.status == AccountStatus.INACTIVE:
        return AccountCheck.invalid(InvalidReason.INACTIVE)
    if user.deletion_requested:
        return AccountCheck.invalid(InvalidReason.DELETION_REQUESTED)
    unverified = user.status == AccountStatus.PENDING_VERIFICATION or not user.email_verified
    if unverified and user.role not in _VERIFICATION_EXEMPT_ROLES:
        return AccountCheck.invalid(InvalidReason.EMAIL_NOT_VERIFIED)
    return AccountCheck.ok()


def is_token_still_valid(claims: TokenClaims, user: AccountIdentity) -> bool:
    """False when the token was issued at or before the last password change."""
    if user.password_changed_at is None:
        return True
    return claims.issued_at > user.password_changed_at.timestamp()
