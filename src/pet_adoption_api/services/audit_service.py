"""Audit trail for privileged actions.

Role grants, account status changes and adoption status changes each leave
one append-only ``AuditLog`` row naming the actor and the affected records.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.models.audit_log import AuditLog


async def log_action(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    username: str,
    action: str,
    resource_type: str,
    resource_ids: list[str] | None = None,
    request_ip: str | None = None,
    request_metadata: dict | None = None,
    commit: bool = True,
) -> AuditLog:
    """Record that ``username`` performed ``action`` on ``resource_type``.

    Args:
        session: The database session.
        user_id: Actor id.
        username: Actor username, copied so the row survives renames.
        action: ``role_change``, ``status_change``, ``adoption_transition`` or ``adoption_withdraw``.
        resource_type: ``user`` or ``adoption_request``.
        resource_ids: Ids of the affected rows.
        request_ip: Client IP, when the action came over HTTP.
        request_metadata: Before/after values and other context.
        commit: When False the row joins the caller's transaction and is
            committed (or rolled back) with the change it describes.

    Returns:
        The new AuditLog row.
    """
    entry = AuditLog(
        user_id=user_id,
        username=username,
        action=action,
        resource_type=resource_type,
        resource_ids=resource_ids,
        request_ip=request_ip,
        request_metadata=request_metadata,
    )
    session.add(entry)
    if commit:
        await session.commit()
    return entry


def _conditions(
    user_id: uuid.UUID | None,
    action: str | None,
    resource_type: str | None,
    start_time: datetime | None,
    end_time: datetime | None,
) -> list[Any]:
    conditions: list[Any] = []
    if user_id is not None:
        conditions.append(AuditLog.user_id == user_id)
    if action is not None:
        conditions.append(AuditLog.action == action)
    if resource_type is not None:
        conditions.append(AuditLog.resource_type == resource_type)
    if start_time is not None:
        conditions.append(AuditLog.timestamp >= start_time)
    if end_time is not None:
        conditions.append(AuditLog.timestamp <= end_time)
    return conditions


async def query_audit_logs(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[AuditLog], int]:
    """Page through audit rows matching every given filter, newest first.

    Returns:
        Tuple of (rows on the page, total matching rows).
    """
    conditions = _conditions(user_id, action, resource_type, start_time, end_time)
    total = (await session.execute(select(func.count(AuditLog.id)).where(*conditions))).scalar_one()

    result = await session.execute(
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.timestamp.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total
