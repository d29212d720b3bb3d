"""Adoption request transition table.

``REVIEW_TRANSITIONS`` is the only source of truth for which status changes a
reviewer may make. Withdrawal is the applicant's own action and is governed
by ``WITHDRAWABLE_STATUSES`` instead.
"""

from pet_adoption_api.core.errors import InvalidTransitionError
from pet_adoption_api.models.adoption_request import CLOSED_STATUSES, AdoptionStatus

REVIEW_TRANSITIONS: dict[AdoptionStatus, frozenset[AdoptionStatus]] = {
    AdoptionStatus.PENDING: frozenset(
        {AdoptionStatus.UNDER_REVIEW, AdoptionStatus.APPROVED, AdoptionStatus.REJECTED}
    ),
    AdoptionStatus.UNDER_REVIEW: frozenset(
        {AdoptionStatus.INTERVIEW_SCHEDULED, AdoptionStatus.APPROVED, AdoptionStatus.REJECTED}
    ),
    AdoptionStatus.INTERVIEW_SCHEDULED: frozenset({AdoptionStatus.APPROVED, AdoptionStatus.REJECTED}),
    AdoptionStatus.APPROVED: frozenset({AdoptionStatus.COMPLETED}),
    AdoptionStatus.REJECTED: frozenset({AdoptionStatus.UNDER_REVIEW, AdoptionStatus.PENDING}),
    AdoptionStatus.COMPLETED: frozenset(),
    AdoptionStatus.WITHDRAWN: frozenset(),
}

WITHDRAWABLE_STATUSES: frozenset[AdoptionStatus] = frozenset(
    {AdoptionStatus.PENDING, AdoptionStatus.UNDER_REVIEW, AdoptionStatus.INTERVIEW_SCHEDULED}
)

# Entering one of these schedules a follow-up unless one is already pending.
FOLLOW_UP_STATUSES: frozenset[AdoptionStatus] = frozenset(
    {AdoptionStatus.UNDER_REVIEW, AdoptionStatus.INTERVIEW_SCHEDULED}
)


def _as_status(value: str) -> AdoptionStatus | None:
    try:
        return AdoptionStatus(value)
    except ValueError:
        return None


def allowed_targets(current: str) -> list[str]:
    """Sorted list of statuses a reviewer may move ``current`` to."""
    status = _as_status(current)
    if status is None:
        return []
    return sorted(REVIEW_TRANSITIONS[status])


def is_allowed(current: str, target: str) -> bool:
    status = _as_status(current)
    target_status = _as_status(target)
    if status is None or target_status is None:
        return False
    return target_status in REVIEW_TRANSITIONS[status]


def check_transition(current: str, target: str) -> AdoptionStatus:
    """Validate a reviewer transition and return the target as ``AdoptionStatus``.

    Raises:
        InvalidTransitionError: ``target`` is not an edge out of ``current``.
    """
    if not is_allowed(current, target):
        raise InvalidTransitionError(current, target, allowed_targets(current))
    return AdoptionStatus(target)


def check_withdrawal(current: str) -> None:
    """Raise ``InvalidTransitionError`` unless ``current`` may be withdrawn."""
    status = _as_status(current)
    if status not in WITHDRAWABLE_STATUSES:
        raise InvalidTransitionError(current, AdoptionStatus.WITHDRAWN, [])


def reopens(current: str, target: str) -> bool:
    """True when the change makes a closed request live again."""
    return current in CLOSED_STATUSES and target not in CLOSED_STATUSES


def schedules_follow_up(target: str) -> bool:
    return target in FOLLOW_UP_STATUSES
