"""Session context builder: the single guard in front of every protected route.

Order of checks: limiter pre-check on the client key, credential
verification, identity load, account gate, then stale-token check. Each
rejection is raised as a typed ``AppError`` subclass.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from loguru import logger

from pet_adoption_api.core.errors import AccountInvalidError, CredentialError, RateLimitedError
from pet_adoption_api.lib.guard.account import AccountIdentity, InvalidReason, is_token_still_valid, validate_account
from pet_adoption_api.lib.guard.credentials import (
    DEFAULT_BARE_TOKEN_MIN_LENGTH,
    CredentialFailure,
    TokenClaims,
    verify_credential,
)
from pet_adoption_api.lib.guard.limiter import AttemptLimiter

UserT = TypeVar("UserT", bound=AccountIdentity)

# Same wording for unknown and deleted accounts so the response does not
# reveal whether an account exists.
_GENERIC_ACCOUNT_MESSAGE = "Could not validate credentials"

_ACCOUNT_MESSAGES: dict[InvalidReason, str] = {
    InvalidReason.LOCKED: "Account is temporarily locked",
    InvalidReason.SUSPENDED: "Account is suspended",
    InvalidReason.BANNED: "Account is banned",
    InvalidReason.INACTIVE: "Account is inactive",
    InvalidReason.EMAIL_NOT_VERIFIED: "Email address has not been verified",
    InvalidReason.DELETION_REQUESTED: "Account is scheduled for deletion",
}


@dataclass(frozen=True)
class SessionContext(Generic[UserT]):
    """An authenticated identity plus the claims it presented."""

    user: UserT
    claims: TokenClaims


class SessionGuard(Generic[UserT]):
    """Authenticate a raw Authorization value.

    Args:
        secret_key: JWT verification key.
        algorithm: Expected JWT algorithm.
        limiter: Limiter counting rejected credentials per client key.
        min_bare_length: Minimum length of a scheme-less token.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str,
        limiter: AttemptLimiter,
        *,
        min_bare_length: int = DEFAULT_BARE_TOKEN_MIN_LENGTH,
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.limiter = limiter
        self.min_bare_length = min_bare_length

    async def authenticate(
        self,
        raw: str | None,
        client_key: str,
        load_identity: Callable[[str], Awaitable[UserT | None]],
    ) -> SessionContext[UserT]:
        """Return the session for ``raw`` or raise a typed rejection.

        Args:
            raw: Authorization header value, None when absent.
            client_key: Limiter key for the caller (normally its IP).
            load_identity: Loads the identity for a token subject.

        Raises:
            RateLimitedError: Too many rejected credentials from ``client_key``.
            CredentialError: Missing, malformed, invalid, expired or stale token.
            AccountInvalidError: The account may not authenticate.
        """
        decision = self.limiter.check(client_key)
        if not decision.allowed:
            logger.warning(f"Authentication throttled for {client_key}")
            raise RateLimitedError("authentication", decision.retry_after_seconds)

        try:
            claims = verify_credential(
                raw,
                self.secret_key,
                self.algorithm,
                min_bare_length=self.min_bare_length,
            )
        except CredentialError as exc:
            if exc.kind != CredentialFailure.MISSING:
                self.limiter.record_failure(client_key)
            logger.warning(f"Credential rejected for {client_key}: {exc.kind}")
            raise

        if claims.token_type not in (None, "access"):
            self.limiter.record_failure(client_key)
            logger.warning(f"Credential rejected for {client_key}: {claims.token_type} token used for access")
            raise CredentialError(CredentialFailure.MALFORMED)

        user = await load_identity(claims.subject)
        check = validate_account(user)
        if not check.valid:
            reason = check.reason or InvalidReason.NOT_FOUND
            if reason is InvalidReason.NOT_FOUND:
                self.limiter.record_failure(client_key)
            logger.warning(f"Account rejected for subject {claims.subject}: {reason}")
            raise AccountInvalidError(reason, _ACCOUNT_MESSAGES.get(reason, _GENERIC_ACCOUNT_MESSAGE))

        if not is_token_still_valid(claims, user):
            logger.info(f"Stale token for subject {claims.subject} rejected")
            raise CredentialError(CredentialFailure.STALE)

        return SessionContext(user=user, claims=claims)
