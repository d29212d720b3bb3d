"""Unit tests for the role/operation authorizer and role-grant rules."""

import uuid
from types import SimpleNamespace

import pytest

from pet_adoption_api.core.errors import ForbiddenError
from pet_adoption_api.lib.guard.permissions import (
    ROLE_PERMISSIONS,
    Operation,
    authorize,
    can_assign_role,
    can_view,
    has_permission,
    is_staff_or_above,
    role_rank,
)

APPLICANT_ROLES = ["user", "volunteer", "foster"]
REVIEWER_ROLES = ["staff", "admin", "super_admin"]


def _actor(role: str) -> SimpleNamespace:
    return SimpleNamespace(id=uuid.uuid4(), role=role)


class TestRolePermissions:
    def test_every_role_has_an_entry(self) -> None:
        assert {str(role) for role in ROLE_PERMISSIONS} == set(APPLICANT_ROLES + REVIEWER_ROLES)

    @pytest.mark.parametrize("role", APPLICANT_ROLES)
    def test_applicant_roles(self, role) -> None:
        assert has_permission(role, Operation.CREATE)
        assert has_permission(role, Operation.VIEW_OWN)
        assert not has_permission(role, Operation.VIEW_ALL)
        assert not has_permission(role, Operation.TRANSITION)
        assert not has_permission(role, Operation.ADD_COMMUNICATION)

    @pytest.mark.parametrize("role", REVIEWER_ROLES)
    def test_reviewer_roles_have_everything(self, role) -> None:
        for operation in Operation:
            assert has_permission(role, operation)

    def test_unknown_role_has_nothing(self) -> None:
        for operation in Operation:
            assert not has_permission("janitor", operation)

    def test_role_rank_order(self) -> None:
        ranks = [role_rank(role) for role in APPLICANT_ROLES + REVIEWER_ROLES]
        assert ranks == sorted(ranks)
        assert role_rank("janitor") == -1

    def test_staff_or_above(self) -> None:
        assert [is_staff_or_above(r) for r in APPLICANT_ROLES] == [False, False, False]
        assert [is_staff_or_above(r) for r in REVIEWER_ROLES] == [True, True, True]


class TestAuthorize:
    @pytest.mark.parametrize("role", APPLICANT_ROLES)
    def test_applicant_cannot_transition(self, role) -> None:
        with pytest.raises(ForbiddenError):
            authorize(_actor(role), Operation.TRANSITION)

    @pytest.mark.parametrize("role", REVIEWER_ROLES)
    def test_reviewer_can_transition(self, role) -> None:
        authorize(_actor(role), Operation.TRANSITION)

    def test_owner_can_view_own_request(self) -> None:
        actor = _actor("user")
        authorize(actor, Operation.VIEW_OWN, SimpleNamespace(applicant_id=actor.id))

    def test_non_owner_cannot_view_request(self) -> None:
        with pytest.raises(ForbiddenError, match="your own"):
            authorize(_actor("user"), Operation.VIEW_OWN, SimpleNamespace(applicant_id=uuid.uuid4()))

    def test_staff_can_view_any_request(self) -> None:
        authorize(_actor("staff"), Operation.VIEW_OWN, SimpleNamespace(applicant_id=uuid.uuid4()))

    def test_unknown_role_is_forbidden(self) -> None:
        with pytest.raises(ForbiddenError):
            authorize(_actor("janitor"), Operation.CREATE)

    def test_error_maps_to_403(self) -> None:
        with pytest.raises(ForbiddenError) as exc_info:
            authorize(_actor("volunteer"), Operation.ADD_COMMUNICATION)
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "forbidden"


class TestCanView:
    def test_owner(self) -> None:
        actor = _actor("foster")
        assert can_view(actor, SimpleNamespace(applicant_id=actor.id)) is True

    def test_stranger(self) -> None:
        assert can_view(_actor("foster"), SimpleNamespace(applicant_id=uuid.uuid4())) is False

    def test_staff(self) -> None:
        assert can_view(_actor("staff"), SimpleNamespace(applicant_id=uuid.uuid4())) is True


class TestCanAssignRole:
    @pytest.mark.parametrize(
        ("current", "new"),
        [("user", "super_admin"), ("super_admin", "user"), ("admin", "staff"), ("user", "admin")],
    )
    def test_super_admin_may_change_anything(self, current, new) -> None:
        assert can_assign_role("super_admin", current, new) is True

    @pytest.mark.parametrize(("current", "new"), [("user", "staff"), ("staff", "volunteer"), ("foster", "user")])
    def test_admin_below_admin(self, current, new) -> None:
        assert can_assign_role("admin", current, new) is True

    @pytest.mark.parametrize(
        ("current", "new"),
        [("user", "admin"), ("user", "super_admin"), ("admin", "user"), ("super_admin", "staff")],
    )
    def test_admin_cannot_touch_admin_ranks(self, current, new) -> None:
        assert can_assign_role("admin", current, new) is False

    @pytest.mark.parametrize("actor_role", ["user", "volunteer", "foster", "staff"])
    def test_lower_roles_cannot_assign(self, actor_role) -> None:
        assert can_assign_role(actor_role, "user", "volunteer") is False

    def test_unknown_roles_rejected(self) -> None:
        assert can_assign_role("super_admin", "user", "janitor") is False
        assert can_assign_role("super_admin", "janitor", "user") is False
