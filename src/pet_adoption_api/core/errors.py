"""Application error hierarchy.

Each error class carries the HTTP status and machine-readable code it maps
to; ``create_app`` registers a single handler for ``AppError`` that renders
``{"detail": message, "code": code, **detail}``.
"""

from datetime import datetime
from typing import Any


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    code: str = "bad_request"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    @property
    def headers(self) -> dict[str, str] | None:
        return None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationFailedError(AppError):
    """Caller-correctable input problem with field-level detail."""

    status_code = 422
    code = "validation_failed"

    def __init__(self, errors: list[dict[str, str]]) -> None:
        super().__init__("Validation failed", detail={"errors": errors})
        self.errors = errors


class MissingRejectionReasonError(AppError):
    status_code = 422
    code = "missing_rejection_reason"

    def __init__(self, min_length: int) -> None:
        super().__init__(
            f"A rejection reason of at least {min_length} characters is required",
            detail={"min_length": min_length},
        )
        self.min_length = min_length


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class AdoptionRequestNotFoundError(NotFoundError):
    code = "adoption_request_not_found"

    def __init__(self, request_id: object) -> None:
        super().__init__(f"Adoption request {request_id} not found")


class PetNotFoundError(NotFoundError):
    code = "pet_not_found"

    def __init__(self, pet_id: object) -> None:
        super().__init__(f"Pet {pet_id} not found")


class UserNotFoundError(NotFoundError):
    code = "user_not_found"

    def __init__(self, user_id: object) -> None:
        super().__init__(f"User {user_id} not found")


# ---------------------------------------------------------------------------
# State conflicts
# ---------------------------------------------------------------------------


class ConflictError(AppError):
    status_code = 409
    code = "conflict"


class PetUnavailableError(ConflictError):
    code = "pet_unavailable"

    def __init__(self, pet_id: object, status: str) -> None:
        super().__init__(
            f"Pet {pet_id} is not available for adoption (status: {status})",
            detail={"pet_status": status},
        )


class DuplicateApplicationError(ConflictError):
    code = "duplicate_application"

    def __init__(self, pet_id: object) -> None:
        super().__init__(
            f"An active adoption request for pet {pet_id} already exists",
            detail={"pet_id": str(pet_id)},
        )


class InvalidTransitionError(ConflictError):
    """Target status is not reachable from the current stored status."""

    code = "invalid_transition"

    def __init__(self, current: str, target: str, allowed: list[str]) -> None:
        if allowed:
            hint = f"allowed: {', '.join(allowed)}"
        else:
            hint = "no further transitions are allowed"
        super().__init__(
            f"Cannot change status from '{current}' to '{target}' ({hint})",
            detail={"current_status": current, "target_status": target, "allowed": allowed},
        )
        self.current = current
        self.target = target
        self.allowed = allowed


class ReReviewLimitError(ConflictError):
    code = "rereview_limit_reached"

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"This request has already been reopened {limit} time(s)",
            detail={"max_rereviews": limit},
        )


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------


class AuthenticationError(AppError):
    status_code = 401
    code = "unauthorized"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class CredentialError(AuthenticationError):
    """Bearer credential rejected; ``kind`` distinguishes the failure."""

    code = "invalid_credential"

    _MESSAGES = {
        "missing": "Missing authorization header",
        "malformed": "Malformed authentication token",
        "signature_invalid": "Invalid token signature",
        "expired": "Token has expired, please log in again",
        "not_yet_valid": "Token is not yet valid",
        "stale": "Token was issued before the last password change, please log in again",
    }

    def __init__(self, kind: str, message: str | None = None) -> None:
        super().__init__(message or self._MESSAGES.get(kind, "Could not validate credentials"), detail={"kind": kind})
        self.kind = kind


class AccountInvalidError(AuthenticationError):
    """Account may not authenticate. ``reason`` is logged, not always shown."""

    code = "account_invalid"

    def __init__(self, reason: str, message: str) -> None:
        # An unknown account is indistinguishable from a bad credential.
        super().__init__(message, detail={} if reason == "not_found" else {"reason": reason})
        self.reason = reason


class AccountLockedError(AppError):
    status_code = 423
    code = "account_locked"

    def __init__(self, lock_until: datetime, retry_after_seconds: int) -> None:
        super().__init__(
            "Account is temporarily locked due to repeated failed logins",
            detail={"lock_until": lock_until.isoformat(), "retry_after_seconds": retry_after_seconds},
        )
        self.lock_until = lock_until
        self.retry_after_seconds = retry_after_seconds

    @property
    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after_seconds)}


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class RateLimitedError(AppError):
    """Always retryable; carries a retry hint."""

    status_code = 429
    code = "rate_limited"

    def __init__(self, action: str, retry_after_seconds: int) -> None:
        super().__init__(
            f"Too many {action} attempts. Please try again later.",
            detail={"retry_after_seconds": retry_after_seconds},
        )
        self.action = action
        self.retry_after_seconds = retry_after_seconds

    @property
    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after_seconds)}
