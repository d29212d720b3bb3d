"""Adoption library: the request lifecycle's transition table and field validators.

Public API:
    - REVIEW_TRANSITIONS: Status → allowed reviewer targets
    - allowed_targets / check_transition: Transition-table queries
    - check_withdrawal: Applicant withdrawal rule
    - validate_applicant_fields / validate_rejection_reason: Typed field checks
"""

from pet_adoption_api.lib.adoption.transitions import (
    FOLLOW_UP_STATUSES,
    REVIEW_TRANSITIONS,
    WITHDRAWABLE_STATUSES,
    allowed_targets,
    check_transition,
    check_withdrawal,
    is_allowed,
    reopens,
    schedules_follow_up,
)
from pet_adoption_api.lib.adoption.validators import (
    FieldError,
    raise_for_errors,
    validate_applicant_fields,
    validate_rejection_reason,
)

__all__ = [
    "FOLLOW_UP_STATUSES",
    "REVIEW_TRANSITIONS",
    "WITHDRAWABLE_STATUSES",
    "FieldError",
    "allowed_targets",
    "check_transition",
    "check_withdrawal",
    "is_allowed",
    "raise_for_errors",
    "reopens",
    "schedules_follow_up",
    "validate_applicant_fields",
    "validate_rejection_reason",
]
