"""Integration tests for the adoption request endpoints."""

import uuid

import pytest

from pet_adoption_api.core.rate_limits import ADOPTION_CREATE
from pet_adoption_api.services import pet_service

BASE = "/api/v1/adoption-requests"
REASON = "Landlord does not allow large dogs"


@pytest.fixture
def payload(pet, application_fields) -> dict:
    return {
        **application_fields,
        "pet_id": str(pet.id),
        "preferred_date": application_fields["preferred_date"].isoformat(),
    }


@pytest.fixture
async def submitted(client, applicant, auth_headers, payload) -> dict:
    response = await client.post(BASE, json=payload, headers=auth_headers(applicant))
    assert response.status_code == 201
    return response.json()


class TestCreateAdoptionRequest:
    @pytest.mark.asyncio
    async def test_creates_pending_request(self, client, applicant, pet, auth_headers, payload) -> None:
        response = await client.post(BASE, json=payload, headers=auth_headers(applicant))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["applicant_id"] == str(applicant.id)
        assert body["pet_id"] == str(pet.id)
        assert body["applicant_name"] == "Alice Walker"
        assert body["source"] == "website"
        assert [c["message"] for c in body["communications"]] == ["Application submitted"]

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client, payload) -> None:
        response = await client.post(BASE, json=payload)
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["kind"] == "missing"

    @pytest.mark.asyncio
    async def test_duplicate_live_application(self, client, applicant, auth_headers, payload, submitted) -> None:
        response = await client.post(BASE, json=payload, headers=auth_headers(applicant))
        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_application"

    @pytest.mark.asyncio
    async def test_unknown_pet(self, client, applicant, auth_headers, payload) -> None:
        unknown = {**payload, "pet_id": str(uuid.uuid4())}
        response = await client.post(BASE, json=unknown, headers=auth_headers(applicant))
        assert response.status_code == 404
        assert response.json()["code"] == "pet_not_found"

    @pytest.mark.asyncio
    async def test_unavailable_pet(self, client, applicant, auth_headers, make_pet, payload) -> None:
        adopted = await make_pet("Rex", status="adopted")
        response = await client.post(BASE, json={**payload, "pet_id": str(adopted.id)}, headers=auth_headers(applicant))
        assert response.status_code == 409
        assert response.json()["pet_status"] == "adopted"

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, client, applicant, auth_headers, payload) -> None:
        del payload["city"]
        response = await client.post(BASE, json=payload, headers=auth_headers(applicant))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_throttled_per_user(self, client, applicant, auth_headers, payload, limiters) -> None:
        for _ in range(10):
            limiters[ADOPTION_CREATE].hit(str(applicant.id))

        response = await client.post(BASE, json=payload, headers=auth_headers(applicant))
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "3600"


class TestReadAdoptionRequests:
    @pytest.mark.asyncio
    async def test_applicant_reads_own(self, client, applicant, auth_headers, submitted) -> None:
        response = await client.get(f"{BASE}/{submitted['id']}", headers=auth_headers(applicant))
        assert response.status_code == 200
        assert response.json()["id"] == submitted["id"]

    @pytest.mark.asyncio
    async def test_other_applicant_gets_404(self, client, other_applicant, auth_headers, submitted) -> None:
        response = await client.get(f"{BASE}/{submitted['id']}", headers=auth_headers(other_applicant))
        assert response.status_code == 404
        assert response.json()["code"] == "adoption_request_not_found"

    @pytest.mark.asyncio
    async def test_listing_is_scoped(self, client, other_applicant, staff_user, auth_headers, submitted) -> None:
        own = await client.get(BASE, headers=auth_headers(other_applicant))
        assert own.status_code == 200
        assert own.json()["items"] == []

        everyone = await client.get(BASE, headers=auth_headers(staff_user))
        assert [item["id"] for item in everyone.json()["items"]] == [submitted["id"]]
        assert everyone.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_due_follow_ups_staff_only(self, client, applicant, staff_user, auth_headers, submitted) -> None:
        forbidden = await client.get(f"{BASE}/follow-ups/due", headers=auth_headers(applicant))
        assert forbidden.status_code == 403

        allowed = await client.get(f"{BASE}/follow-ups/due", headers=auth_headers(staff_user))
        assert allowed.status_code == 200
        assert allowed.json() == []


class TestTransitionAdoptionRequest:
    @pytest.mark.asyncio
    async def test_review_and_complete(
        self, client, staff_user, applicant, pet, auth_headers, submitted, session_factory
    ) -> None:
        url = f"{BASE}/{submitted['id']}/status"
        headers = auth_headers(staff_user)

        review = await client.patch(url, json={"status": "under_review"}, headers=headers)
        assert review.status_code == 200
        assert review.json()["follow_up_required"] is True
        assert review.json()["reviewer_id"] == str(staff_user.id)

        approved = await client.patch(url, json={"status": "approved", "notes": "Great fit"}, headers=headers)
        assert approved.json()["status"] == "approved"
        assert approved.json()["admin_notes"] == "Great fit"

        completed = await client.patch(url, json={"status": "completed"}, headers=headers)
        assert completed.status_code == 200
        assert completed.json()["follow_up_required"] is False

        async with session_factory() as session:
            stored = await pet_service.get_pet(session, pet.id)
            assert stored.status == "adopted"
            assert stored.adopted_by == applicant.id

    @pytest.mark.asyncio
    async def test_pet_approved_for_one_applicant_only(
        self, client, staff_user, other_applicant, auth_headers, payload, submitted
    ) -> None:
        rival = await client.post(BASE, json=payload, headers=auth_headers(other_applicant))
        assert rival.status_code == 201
        headers = auth_headers(staff_user)

        first = await client.patch(f"{BASE}/{submitted['id']}/status", json={"status": "approved"}, headers=headers)
        assert first.status_code == 200

        second = await client.patch(f"{BASE}/{rival.json()['id']}/status", json={"status": "approved"}, headers=headers)
        assert second.status_code == 409
        assert second.json()["code"] == "pet_unavailable"
        assert second.json()["pet_status"] == "pending_adoption"

        stored = await client.get(f"{BASE}/{rival.json()['id']}", headers=headers)
        assert stored.json()["status"] == "pending"

    @pytest.mark.asyncio
    async def test_invalid_transition_reports_allowed(self, client, staff_user, auth_headers, submitted) -> None:
        url = f"{BASE}/{submitted['id']}/status"
        await client.patch(url, json={"status": "approved"}, headers=auth_headers(staff_user))

        response = await client.patch(url, json={"status": "pending"}, headers=auth_headers(staff_user))
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "invalid_transition"
        assert body["current_status"] == "approved"
        assert body["target_status"] == "pending"
        assert body["allowed"] == ["completed"]

    @pytest.mark.asyncio
    async def test_rejection_needs_reason(self, client, staff_user, auth_headers, submitted) -> None:
        url = f"{BASE}/{submitted['id']}/status"
        response = await client.patch(url, json={"status": "rejected"}, headers=auth_headers(staff_user))
        assert response.status_code == 422
        assert response.json()["code"] == "missing_rejection_reason"

        response = await client.patch(
            url, json={"status": "rejected", "rejection_reason": REASON}, headers=auth_headers(staff_user)
        )
        assert response.status_code == 200
        assert response.json()["rejection_reason"] == REASON

    @pytest.mark.asyncio
    async def test_applicant_may_not_transition(self, client, applicant, auth_headers, submitted) -> None:
        response = await client.patch(
            f"{BASE}/{submitted['id']}/status", json={"status": "approved"}, headers=auth_headers(applicant)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_status_value(self, client, staff_user, auth_headers, submitted) -> None:
        response = await client.patch(
            f"{BASE}/{submitted['id']}/status", json={"status": "adopted"}, headers=auth_headers(staff_user)
        )
        assert response.status_code == 422


class TestWithdrawAdoptionRequest:
    @pytest.mark.asyncio
    async def test_applicant_withdraws(self, client, applicant, auth_headers, submitted) -> None:
        response = await client.post(
            f"{BASE}/{submitted['id']}/withdraw", json={"reason": "Moving abroad"}, headers=auth_headers(applicant)
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "withdrawn"
        assert body["communications"][-1]["message"] == "Status changed: pending -> withdrawn\nNotes: Moving abroad"

    @pytest.mark.asyncio
    async def test_withdraw_without_body(self, client, applicant, auth_headers, submitted) -> None:
        response = await client.post(f"{BASE}/{submitted['id']}/withdraw", headers=auth_headers(applicant))
        assert response.status_code == 200
        assert response.json()["status"] == "withdrawn"

    @pytest.mark.asyncio
    async def test_not_owner(self, client, other_applicant, auth_headers, submitted) -> None:
        response = await client.post(f"{BASE}/{submitted['id']}/withdraw", headers=auth_headers(other_applicant))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_after_decision(self, client, applicant, staff_user, auth_headers, submitted) -> None:
        await client.patch(
            f"{BASE}/{submitted['id']}/status", json={"status": "approved"}, headers=auth_headers(staff_user)
        )
        response = await client.post(f"{BASE}/{submitted['id']}/withdraw", headers=auth_headers(applicant))
        assert response.status_code == 409
        assert response.json()["current_status"] == "approved"


class TestCommunications:
    @pytest.mark.asyncio
    async def test_staff_adds_entry(self, client, staff_user, auth_headers, submitted) -> None:
        response = await client.post(
            f"{BASE}/{submitted['id']}/communications",
            json={"type": "phone", "message": "Called to arrange a home visit"},
            headers=auth_headers(staff_user),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["type"] == "phone"
        assert body["author_id"] == str(staff_user.id)

    @pytest.mark.asyncio
    async def test_applicant_forbidden(self, client, applicant, auth_headers, submitted) -> None:
        response = await client.post(
            f"{BASE}/{submitted['id']}/communications",
            json={"message": "Any news?"},
            headers=auth_headers(applicant),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_service_entry_types_not_accepted(self, client, staff_user, auth_headers, submitted) -> None:
        response = await client.post(
            f"{BASE}/{submitted['id']}/communications",
            json={"type": "status_change", "message": "Forged"},
            headers=auth_headers(staff_user),
        )
        assert response.status_code == 422
