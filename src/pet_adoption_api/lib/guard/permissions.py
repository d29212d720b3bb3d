"""Role/permission authorizer for adoption-request operations.

A static role → operation table, consulted once per request before the
lifecycle engine runs, plus the role-ordering rules for granting roles.
"""

import enum
import uuid
from typing import Protocol

from pet_adoption_api.core.errors import ForbiddenError
from pet_adoption_api.models.user import UserRole


class Operation(enum.StrEnum):
    """Lifecycle operations subject to authorization."""

    VIEW_OWN = "view_own"
    VIEW_ALL = "view_all"
    CREATE = "create"
    TRANSITION = "transition"
    ADD_COMMUNICATION = "add_communication"


ROLE_ORDER: tuple[UserRole, ...] = (
    UserRole.USER,
    UserRole.VOLUNTEER,
    UserRole.FOSTER,
    UserRole.STAFF,
    UserRole.ADMIN,
    UserRole.SUPER_ADMIN,
)

_APPLICANT_OPERATIONS = frozenset({Operation.VIEW_OWN, Operation.CREATE})
_REVIEWER_OPERATIONS = frozenset(Operation)

ROLE_PERMISSIONS: dict[UserRole, frozenset[Operation]] = {
    UserRole.USER: _APPLICANT_OPERATIONS,
    UserRole.VOLUNTEER: _APPLICANT_OPERATIONS,
    UserRole.FOSTER: _APPLICANT_OPERATIONS,
    UserRole.STAFF: _REVIEWER_OPERATIONS,
    UserRole.ADMIN: _REVIEWER_OPERATIONS,
    UserRole.SUPER_ADMIN: _REVIEWER_OPERATIONS,
}

# Operations that additionally require a staff-or-above role on the target request.
_STAFF_ONLY_OPERATIONS = frozenset({Operation.TRANSITION, Operation.ADD_COMMUNICATION})


class Actor(Protocol):
    id: uuid.UUID
    role: str


class OwnedRequest(Protocol):
    applicant_id: uuid.UUID


def role_rank(role: str) -> int:
    """Position of ``role`` in the privilege order; unknown roles rank lowest."""
    try:
        return ROLE_ORDER.index(UserRole(role))
    except ValueError:
        return -1


def is_staff_or_above(role: str) -> bool:
    return role_rank(role) >= role_rank(UserRole.STAFF)


def permissions_for(role: str) -> frozenset[Operation]:
    try:
        return ROLE_PERMISSIONS[UserRole(role)]
    except ValueError:
        return frozenset()


def has_permission(role: str, operation: Operation) -> bool:
    return operation in permissions_for(role)


def authorize(actor: Actor, operation: Operation, request: OwnedRequest | None = None) -> None:
    """Raise ``ForbiddenError`` unless ``actor`` may perform ``operation``.

    For ``view_own`` on a specific request, the actor must be its applicant
    unless the role also grants ``view_all``. ``transition`` and
    ``add_communication`` always require staff or above.

    Args:
        actor: The authenticated user.
        operation: The operation requested.
        request: The target adoption request, when there is one.
    """
    granted = permissions_for(actor.role)
    if operation not in granted:
        raise ForbiddenError(f"Role '{actor.role}' may not perform '{operation}'")

    if operation is Operation.VIEW_OWN and request is not None:
        if Operation.VIEW_ALL not in granted and request.applicant_id != actor.id:
            raise ForbiddenError("You may only view your own adoption requests")

    if operation in _STAFF_ONLY_OPERATIONS and not is_staff_or_above(actor.role):
        raise ForbiddenError(f"Role '{actor.role}' may not perform '{operation}'")


def can_view(actor: Actor, request: OwnedRequest) -> bool:
    """Non-raising visibility check used to hide requests from non-owners."""
    granted = permissions_for(actor.role)
    return Operation.VIEW_ALL in granted or (Operation.VIEW_OWN in granted and request.applicant_id == actor.id)


def can_assign_role(actor_role: str, current_role: str, new_role: str) -> bool:
    """Whether ``actor_role`` may move a user from ``current_role`` to ``new_role``.

    Only super_admin may grant or revoke super_admin. Admin may grant or
    revoke any role strictly below admin. Nobody else may change roles.
    """
    if role_rank(new_role) < 0 or role_rank(current_role) < 0:
        return False
    if actor_role == UserRole.SUPER_ADMIN:
        return True
    if actor_role == UserRole.ADMIN:
        ceiling = role_rank(UserRole.ADMIN)
        return role_rank(current_role) < ceiling and role_rank(new_role) < ceiling
    return False
