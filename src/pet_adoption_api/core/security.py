"""Password hashing and JWT minting.

Verification of presented tokens is the guard's job; see
``pet_adoption_api.lib.guard.credentials``.
"""

from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """True when ``plain_password`` matches the stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _issue(payload: dict, secret_key: str, algorithm: str, lifetime: timedelta, issued_at: datetime | None) -> str:
    now = issued_at or datetime.now(UTC)
    # iat keeps sub-second precision so a token minted right after a password
    # change compares strictly later than password_changed_at.
    return jwt.encode({**payload, "iat": now.timestamp(), "exp": now + lifetime}, secret_key, algorithm=algorithm)


def create_access_token(
    subject: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
    *,
    issued_at: datetime | None = None,
) -> str:
    """Short-lived bearer token carrying the user id and a snapshot of their role.

    The role claim is informational; authorization always reloads the user.
    """
    claims = {"sub": subject, "role": role, "type": "access"}
    return _issue(claims, secret_key, algorithm, timedelta(minutes=expires_minutes), issued_at)


def create_refresh_token(
    subject: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_days: int = 7,
    *,
    issued_at: datetime | None = None,
) -> str:
    """Long-lived token accepted only by the refresh endpoint."""
    claims = {"sub": subject, "type": "refresh"}
    return _issue(claims, secret_key, algorithm, timedelta(days=expires_days), issued_at)
