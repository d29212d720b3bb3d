"""Bearer credential extraction and JWT verification.

Pure decode/verify with no I/O. Every failure raises ``CredentialError`` whose
``kind`` is one of ``CredentialFailure`` so callers can word distinct messages.
"""

import base64
import binascii
import enum
import re
from dataclasses import dataclass

import jwt

from pet_adoption_api.core.errors import CredentialError

DEFAULT_BARE_TOKEN_MIN_LENGTH = 20


class CredentialFailure(enum.StrEnum):
    """Reasons a bearer credential is rejected."""

    MISSING = "missing"
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    STALE = "stale"


@dataclass(frozen=True)
class TokenClaims:
    """Claims decoded from a verified access token."""

    subject: str
    issued_at: float
    role: str | None = None
    expires_at: float | None = None
    token_type: str | None = None


def extract_bearer(raw: str | None, min_bare_length: int = DEFAULT_BARE_TOKEN_MIN_LENGTH) -> str:
    """Pull the token out of an Authorization header value.

    Accepts ``Bearer <token>`` (scheme is case-insensitive) and, for older
    clients, a bare token with no whitespace of at least ``min_bare_length``
    characters.

    Raises:
        CredentialError: ``missing`` or ``malformed``.
    """
    if raw is None or not raw.strip():
        raise CredentialError(CredentialFailure.MISSING)

    value = raw.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer":
        token = rest.strip()
        if not token or any(ch.isspace() for ch in token):
            raise CredentialError(CredentialFailure.MALFORMED)
        return token

    if any(ch.isspace() for ch in value) or len(value) < min_bare_length:
        raise CredentialError(CredentialFailure.MALFORMED)
    return value


_BASE64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


def _is_base64url(segment: str) -> bool:
    if not _BASE64URL_SEGMENT.match(segment) or len(segment.rstrip("=")) % 4 == 1:
        return False
    padded = segment + "=" * (-len(segment) % 4)
    try:
        base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError):
        return False
    return True


def has_jwt_structure(token: str) -> bool:
    """Three non-empty, dot-separated, base64url-decodable segments."""
    segments = token.split(".")
    return len(segments) == 3 and all(seg and _is_base64url(seg) for seg in segments)


def verify_credential(
    raw: str | None,
    secret_key: str,
    algorithm: str = "HS256",
    *,
    min_bare_length: int = DEFAULT_BARE_TOKEN_MIN_LENGTH,
    leeway: float = 0,
) -> TokenClaims:
    """Verify a raw Authorization value and return its claims.

    Args:
        raw: The Authorization header value (or None when absent).
        secret_key: Key used to verify the signature.
        algorithm: Expected JWT algorithm.
        min_bare_length: Minimum length of a scheme-less token.
        leeway: Clock-skew allowance in seconds for exp/nbf/iat.

    Returns:
        The decoded TokenClaims.

    Raises:
        CredentialError: With a ``CredentialFailure`` kind.
    """
    token = extract_bearer(raw, min_bare_length)
    if not has_jwt_structure(token):
        raise CredentialError(CredentialFailure.MALFORMED)

    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            leeway=leeway,
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise CredentialError(CredentialFailure.EXPIRED) from exc
    except jwt.ImmatureSignatureError as exc:
        raise CredentialError(CredentialFailure.NOT_YET_VALID) from exc
    except jwt.InvalidSignatureError as exc:
        raise CredentialError(CredentialFailure.SIGNATURE_INVALID) from exc
    except jwt.InvalidTokenError as exc:
        raise CredentialError(CredentialFailure.MALFORMED) from exc

    subject = payload.get("sub")
    issued_at = payload.get("iat")
    if not isinstance(subject, str) or not subject or not isinstance(issued_at, int | float):
        raise CredentialError(CredentialFailure.MALFORMED)

    return TokenClaims(
        subject=subject,
        issued_at=float(issued_at),
        role=payload.get("role"),
        expires_at=payload.get("exp"),
        token_type=payload.get("type"),
    )
