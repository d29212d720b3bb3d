"""Tests for the audit logging service module."""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from pet_adoption_api.services.audit_service import log_action, query_audit_logs


class TestLogAction:
    """Tests for log_action."""

    @pytest.mark.asyncio
    async def test_creates_audit_log_record(self) -> None:
        session = AsyncMock()
        user_id = uuid.uuid4()

        await log_action(
            session,
            user_id=user_id,
            username="ada",
            action="role_change",
            resource_type="user",
        )

        session.add.assert_called_once()
        session.commit.assert_awaited_once()
        added_obj = session.add.call_args[0][0]
        assert added_obj.user_id == user_id
        assert added_obj.username == "ada"
        assert added_obj.action == "role_change"
        assert added_obj.resource_type == "user"

    @pytest.mark.asyncio
    async def test_joins_caller_transaction(self) -> None:
        session = AsyncMock()

        record = await log_action(
            session,
            user_id=uuid.uuid4(),
            username="sam",
            action="adoption_transition",
            resource_type="adoption_request",
            resource_ids=["r-1"],
            request_ip="10.0.0.1",
            request_metadata={"from": "pending", "to": "approved"},
            commit=False,
        )

        session.commit.assert_not_awaited()
        assert record.resource_ids == ["r-1"]
        assert record.request_ip == "10.0.0.1"
        assert record.request_metadata == {"from": "pending", "to": "approved"}


class TestQueryAuditLogs:
    """Tests for query_audit_logs against the test database."""

    @pytest.mark.asyncio
    async def test_filters_and_orders_newest_first(self, async_session) -> None:
        ada, sam = uuid.uuid4(), uuid.uuid4()
        await log_action(async_session, user_id=ada, username="ada", action="role_change", resource_type="user")
        await log_action(async_session, user_id=sam, username="sam", action="status_change", resource_type="user")
        await log_action(
            async_session,
            user_id=sam,
            username="sam",
            action="adoption_transition",
            resource_type="adoption_request",
        )

        records, total = await query_audit_logs(async_session, user_id=sam)
        assert total == 2
        assert {r.action for r in records} == {"adoption_transition", "status_change"}
        assert records[0].timestamp >= records[1].timestamp

        records, total = await query_audit_logs(async_session, resource_type="user")
        assert total == 2

        records, total = await query_audit_logs(async_session, action="role_change")
        assert [r.username for r in records] == ["ada"]

    @pytest.mark.asyncio
    async def test_time_window(self, async_session) -> None:
        await log_action(
            async_session, user_id=uuid.uuid4(), username="ada", action="role_change", resource_type="user"
        )
        now = datetime.now(UTC)

        _, total = await query_audit_logs(async_session, start_time=now - timedelta(minutes=1))
        assert total == 1
        _, total = await query_audit_logs(async_session, end_time=now - timedelta(minutes=1))
        assert total == 0
