"""Field validation for adoption applications and review decisions.

Validators return a list of ``FieldError`` rather than raising, so callers can
report every problem at once; ``raise_for_errors`` turns a non-empty list into
``ValidationFailedError``.
"""

import re
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from pet_adoption_api.core.errors import ValidationFailedError

REQUIRED_APPLICANT_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "street",
    "city",
    "region",
    "postal_code",
    "message",
)

MESSAGE_MIN_LENGTH = 10
MESSAGE_MAX_LENGTH = 2000

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[0-9 ()\-.]{6,20}$")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_applicant_fields(fields: dict[str, Any], now: datetime | None = None) -> list[FieldError]:
    """Check the applicant-supplied part of an adoption application.

    Args:
        fields: Applicant fields keyed by column name.
        now: Reference time for the preferred-date check.

    Returns:
        Every problem found; empty when the fields are acceptable.
    """
    errors = [
        FieldError(name, "This field is required") for name in REQUIRED_APPLICANT_FIELDS if _blank(fields.get(name))
    ]
    missing = {error.field for error in errors}

    email = fields.get("email")
    if "email" not in missing and not _EMAIL_RE.match(str(email).strip()):
        errors.append(FieldError("email", "Enter a valid email address"))

    phone = fields.get("phone")
    if "phone" not in missing and not _PHONE_RE.match(str(phone).strip()):
        errors.append(FieldError("phone", "Enter a valid phone number"))

    message = fields.get("message")
    if "message" not in missing:
        length = len(str(message).strip())
        if length < MESSAGE_MIN_LENGTH:
            errors.append(FieldError("message", f"Message must be at least {MESSAGE_MIN_LENGTH} characters"))
        elif length > MESSAGE_MAX_LENGTH:
            errors.append(FieldError("message", f"Message must be at most {MESSAGE_MAX_LENGTH} characters"))

    preferred = fields.get("preferred_date")
    if isinstance(preferred, datetime):
        reference = now or datetime.now(UTC)
        if preferred.tzinfo is None:
            preferred = preferred.replace(tzinfo=UTC)
        if preferred < reference:
            errors.append(FieldError("preferred_date", "Preferred date cannot be in the past"))

    return errors


def validate_rejection_reason(reason: str | None, min_length: int) -> list[FieldError]:
    """A rejection needs a non-blank reason of at least ``min_length`` characters."""
    if reason is None or len(reason.strip()) < min_length:
        return [FieldError("rejection_reason", f"Must be at least {min_length} characters")]
    return []


def raise_for_errors(errors: list[FieldError]) -> None:
    if errors:
        raise ValidationFailedError([error.as_dict() for error in errors])
