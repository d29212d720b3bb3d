"""Adoption request service: applications, review transitions and follow-ups.

Status changes are compare-and-swap updates guarded by the status the change
was validated against. A writer that loses the race re-reads the stored
status and validates again, so it can fail with ``InvalidTransitionError``
but never overwrite a newer state. Duplicate live applications are stopped by
the partial unique index; the lookup beforehand only produces the error sooner.
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.core.config import Settings, get_settings
from pet_adoption_api.core.errors import (
    AdoptionRequestNotFoundError,
    ConflictError,
    DuplicateApplicationError,
    MissingRejectionReasonError,
    PetNotFoundError,
    PetUnavailableError,
    ReReviewLimitError,
)
from pet_adoption_api.lib.adoption import (
    check_transition,
    check_withdrawal,
    raise_for_errors,
    reopens,
    schedules_follow_up,
    validate_applicant_fields,
    validate_rejection_reason,
)
from pet_adoption_api.lib.guard.permissions import Operation, authorize, can_view, has_permission
from pet_adoption_api.models.adoption_request import (
    CLOSED_STATUSES,
    AdoptionCommunication,
    AdoptionRequest,
    AdoptionStatus,
    CommunicationType,
)
from pet_adoption_api.models.pet import PetStatus
from pet_adoption_api.models.user import User
from pet_adoption_api.services import audit_service, pet_service

_MAX_TRANSITION_ATTEMPTS = 3

_CLOSED = sorted(CLOSED_STATUSES)

_LIVE_PAIR_INDEX = "uq_adoption_requests_live_pair"

APPLICANT_FIELDS: frozenset[str] = frozenset(
    {
        "first_name",
        "last_name",
        "email",
        "phone",
        "street",
        "city",
        "region",
        "postal_code",
        "message",
        "preferred_date",
        "housing_type",
        "has_yard",
        "other_pets",
        "experience",
    }
)


@dataclass
class _PlannedChange:
    """Column values and log entry for one validated status change."""

    target: str
    values: dict[str, Any]
    message: str
    effects: list[Callable[[AsyncSession], Awaitable[object]]] = field(default_factory=list)


def _is_live_pair_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig)
    if _LIVE_PAIR_INDEX in text:
        return True
    # SQLite names the columns instead of the index.
    return "adoption_requests.applicant_id" in text and "adoption_requests.pet_id" in text


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------


async def load_request(session: AsyncSession, request_id: uuid.UUID) -> AdoptionRequest | None:
    """Read a request and its communication log from the database, bypassing the identity map."""
    result = await session.execute(
        select(AdoptionRequest)
        .where(AdoptionRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_live_request(
    session: AsyncSession,
    applicant_id: uuid.UUID,
    pet_id: uuid.UUID,
    *,
    exclude_id: uuid.UUID | None = None,
) -> AdoptionRequest | None:
    """Return the live request for (applicant, pet), if any."""
    query = select(AdoptionRequest).where(
        AdoptionRequest.applicant_id == applicant_id,
        AdoptionRequest.pet_id == pet_id,
        AdoptionRequest.status.not_in(_CLOSED),
    )
    if exclude_id is not None:
        query = query.where(AdoptionRequest.id != exclude_id)
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none()


async def get_request(session: AsyncSession, request_id: uuid.UUID, viewer: User) -> AdoptionRequest:
    """Get a request the viewer is allowed to see.

    Requests the viewer may not see are reported as missing rather than
    forbidden.

    Raises:
        AdoptionRequestNotFoundError: Unknown id, or not visible to ``viewer``.
    """
    request = await load_request(session, request_id)
    if request is None or not can_view(viewer, request):
        raise AdoptionRequestNotFoundError(request_id)
    return request


async def list_requests(
    session: AsyncSession,
    viewer: User,
    *,
    status: str | None = None,
    pet_id: uuid.UUID | None = None,
    applicant_id: uuid.UUID | None = None,
    follow_up_due: bool = False,
    now: datetime | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[AdoptionRequest], int]:
    """List adoption requests with optional filters.

    Viewers without ``view_all`` only ever see their own requests, whatever
    ``applicant_id`` they pass.

    Args:
        session: The database session.
        viewer: The requesting user.
        status: Filter by status.
        pet_id: Filter by pet.
        applicant_id: Filter by applicant (staff only).
        follow_up_due: Only live requests whose follow-up date has passed.
        now: Reference time for ``follow_up_due``.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (requests, total count).
    """
    authorize(viewer, Operation.VIEW_OWN)
    if not has_permission(viewer.role, Operation.VIEW_ALL):
        applicant_id = viewer.id

    conditions = []
    if status is not None:
        conditions.append(AdoptionRequest.status == status)
    if pet_id is not None:
        conditions.append(AdoptionRequest.pet_id == pet_id)
    if applicant_id is not None:
        conditions.append(AdoptionRequest.applicant_id == applicant_id)
    if follow_up_due:
        conditions.extend(_due_conditions(now or datetime.now(UTC)))

    total = (await session.execute(select(func.count(AdoptionRequest.id)).where(*conditions))).scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(AdoptionRequest)
        .where(*conditions)
        .order_by(AdoptionRequest.created_at.desc())
        .offset(offset)
        .limit(page_size)
    )
    requests = list(result.scalars().all())
    logger.info(f"Listed {len(requests)} adoption requests (total={total}, page={page})")
    return requests, total


def _due_conditions(now: datetime) -> list[Any]:
    return [
        AdoptionRequest.follow_up_required.is_(True),
        AdoptionRequest.follow_up_date <= now,
        AdoptionRequest.status.not_in(_CLOSED),
    ]


async def list_due_follow_ups(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    limit: int = 100,
) -> list[AdoptionRequest]:
    """Live requests whose scheduled follow-up is due, oldest first."""
    result = await session.execute(
        select(AdoptionRequest)
        .where(*_due_conditions(now or datetime.now(UTC)))
        .order_by(AdoptionRequest.follow_up_date)
        .limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession,
    applicant: User,
    pet_id: uuid.UUID,
    fields: dict[str, Any],
) -> AdoptionRequest:
    """Submit an adoption application.

    Args:
        session: The database session.
        applicant: The applying user.
        pet_id: The pet applied for.
        fields: Applicant contact, address and housing fields.

    Returns:
        The created request, status ``pending``.

    Raises:
        ValidationFailedError: Applicant fields are incomplete or invalid.
        PetNotFoundError: No such pet.
        PetUnavailableError: The pet is not available.
        DuplicateApplicationError: The applicant already has a live request for the pet.
    """
    authorize(applicant, Operation.CREATE)
    applicant_id = applicant.id
    raise_for_errors(validate_applicant_fields(fields))

    await pet_service.find_adoptable_pet(session, pet_id)
    if await find_live_request(session, applicant_id, pet_id) is not None:
        raise DuplicateApplicationError(pet_id)

    values = {name: value for name, value in fields.items() if name in APPLICANT_FIELDS}
    request = AdoptionRequest(
        applicant_id=applicant_id,
        pet_id=pet_id,
        status=AdoptionStatus.PENDING,
        source="website",
        **values,
    )
    session.add(request)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        if _is_live_pair_violation(exc):
            raise DuplicateApplicationError(pet_id) from exc
        raise

    request_id = request.id
    session.add(
        AdoptionCommunication(
            request_id=request_id,
            type=CommunicationType.SYSTEM,
            message="Application submitted",
            author_id=applicant_id,
        )
    )
    await pet_service.increment_inquiry(session, pet_id)
    await session.commit()

    logger.info(f"Created adoption request {request_id} for pet {pet_id} by user {applicant_id}")
    created = await load_request(session, request_id)
    assert created is not None
    return created


async def _compare_and_swap(
    session: AsyncSession,
    request_id: uuid.UUID,
    expected_status: str,
    values: dict[str, Any],
) -> bool:
    """Apply ``values`` only if the stored status is still ``expected_status``."""
    result = await session.execute(
        update(AdoptionRequest)
        .where(AdoptionRequest.id == request_id, AdoptionRequest.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _apply_change(
    session: AsyncSession,
    request_id: uuid.UUID,
    actor: User,
    plan: Callable[[AdoptionRequest, datetime], Awaitable[_PlannedChange]],
    *,
    audit_action: str,
    request_ip: str | None = None,
) -> AdoptionRequest:
    """Validate, swap and log one status change, retrying when another writer wins."""
    # Rollback expires ORM instances; keep plain copies of what is needed after one.
    actor_id, actor_name = actor.id, actor.username

    for attempt in range(1, _MAX_TRANSITION_ATTEMPTS + 1):
        request = await load_request(session, request_id)
        if request is None:
            raise AdoptionRequestNotFoundError(request_id)

        current = request.status
        pet_id = request.pet_id
        now = datetime.now(UTC)
        change = await plan(request, now)

        try:
            swapped = await _compare_and_swap(session, request_id, current, change.values)
        except IntegrityError as exc:
            await session.rollback()
            if _is_live_pair_violation(exc):
                raise DuplicateApplicationError(pet_id) from exc
            raise

        if not swapped:
            await session.rollback()
            logger.info(
                f"Adoption request {request_id} left '{current}' concurrently "
                f"(attempt {attempt}/{_MAX_TRANSITION_ATTEMPTS}); re-validating"
            )
            continue

        session.add(
            AdoptionCommunication(
                request_id=request_id,
                type=CommunicationType.STATUS_CHANGE,
                message=change.message,
                author_id=actor_id,
                created_at=now,
            )
        )
        try:
            for effect in change.effects:
                await effect(session)
        except Exception:
            await session.rollback()
            raise
        await audit_service.log_action(
            session,
            user_id=actor_id,
            username=actor_name,
            action=audit_action,
            resource_type="adoption_request",
            resource_ids=[str(request_id)],
            request_ip=request_ip,
            request_metadata={"from": current, "to": change.target},
            commit=False,
        )
        await session.commit()

        logger.info(f"User {actor_name} moved adoption request {request_id} from '{current}' to '{change.target}'")
        updated = await load_request(session, request_id)
        assert updated is not None
        return updated

    msg = "Adoption request was modified concurrently, please retry"
    raise ConflictError(msg, detail={"request_id": str(request_id)})


async def _reserve_pet(session: AsyncSession, pet_id: uuid.UUID, request_id: uuid.UUID) -> None:
    """Hold the pet for an approved request.

    A pet already ``pending_adoption`` may only be held by this request; one
    that is adopted, withdrawn from the catalog or held by another approved
    request cannot be approved again.
    """
    if await pet_service.mark_pending(session, pet_id):
        return
    pet = await pet_service.get_pet(session, pet_id)
    if pet is None:
        raise PetNotFoundError(pet_id)
    if pet.status == PetStatus.PENDING_ADOPTION:
        holder = await session.execute(
            select(AdoptionRequest.id)
            .where(
                AdoptionRequest.pet_id == pet_id,
                AdoptionRequest.id != request_id,
                AdoptionRequest.status == AdoptionStatus.APPROVED,
            )
            .limit(1)
        )
        if holder.first() is None:
            return
    raise PetUnavailableError(pet_id, pet.status)


def _summary(current: str, target: str, notes: str | None) -> str:
    message = f"Status changed: {current} -> {target}"
    if notes:
        message = f"{message}\nNotes: {notes}"
    return message


async def transition_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    target_status: str,
    acting_user: User,
    *,
    notes: str | None = None,
    rejection_reason: str | None = None,
    settings: Settings | None = None,
    request_ip: str | None = None,
) -> AdoptionRequest:
    """Move a request along the review transition table.

    Args:
        session: The database session.
        request_id: The request to change.
        target_status: Desired status.
        acting_user: The reviewer.
        notes: Reviewer notes, stored as ``admin_notes`` and in the log entry.
        rejection_reason: Required when ``target_status`` is ``rejected``.
        settings: Workflow settings (defaults to ``get_settings()``).
        request_ip: Client IP for the audit trail.

    Returns:
        The updated request.

    Raises:
        ForbiddenError: The acting user may not review requests.
        AdoptionRequestNotFoundError: Unknown id.
        InvalidTransitionError: ``target_status`` is not reachable from the stored status.
        MissingRejectionReasonError: Rejection without an adequate reason.
        ReReviewLimitError: The request has been reopened too often.
        DuplicateApplicationError: Reopening would create a second live request.
        PetUnavailableError: Approving or completing would give the pet to a second applicant.
    """
    settings = settings or get_settings()
    authorize(acting_user, Operation.TRANSITION)
    actor_id = acting_user.id
    target = str(target_status)

    async def plan(request: AdoptionRequest, now: datetime) -> _PlannedChange:
        current = request.status
        check_transition(current, target)

        if target == AdoptionStatus.REJECTED and validate_rejection_reason(
            rejection_reason, settings.adoption_min_rejection_reason_length
        ):
            raise MissingRejectionReasonError(settings.adoption_min_rejection_reason_length)

        leaving_rejected = current == AdoptionStatus.REJECTED
        limit = settings.adoption_max_rereviews
        if leaving_rejected and limit is not None and request.rereview_count >= limit:
            raise ReReviewLimitError(limit)

        if reopens(current, target) and await find_live_request(
            session, request.applicant_id, request.pet_id, exclude_id=request.id
        ):
            raise DuplicateApplicationError(request.pet_id)

        values: dict[str, Any] = {
            "status": target,
            "reviewer_id": actor_id,
            "reviewed_at": now,
            "updated_at": now,
        }
        if notes:
            values["admin_notes"] = notes
        if target == AdoptionStatus.REJECTED:
            values["rejection_reason"] = rejection_reason.strip() if rejection_reason else rejection_reason
        elif leaving_rejected:
            values["rejection_reason"] = None
            values["rereview_count"] = request.rereview_count + 1

        if schedules_follow_up(target) and not request.follow_up_required:
            values["follow_up_required"] = True
            values["follow_up_date"] = now + timedelta(days=settings.adoption_follow_up_days)
        elif target in CLOSED_STATUSES:
            values["follow_up_required"] = False
            values["follow_up_date"] = None

        change = _PlannedChange(target=target, values=values, message=_summary(current, target, notes))
        pet_id, applicant_id = request.pet_id, request.applicant_id
        if target == AdoptionStatus.APPROVED:
            change.effects.append(lambda s: _reserve_pet(s, pet_id, request_id))
        elif target == AdoptionStatus.COMPLETED:
            change.effects.append(lambda s: pet_service.mark_adopted(s, pet_id, applicant_id, now))
        return change

    return await _apply_change(
        session,
        request_id,
        acting_user,
        plan,
        audit_action="adoption_transition",
        request_ip=request_ip,
    )


async def withdraw_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    applicant: User,
    *,
    reason: str | None = None,
    request_ip: str | None = None,
) -> AdoptionRequest:
    """Withdraw the applicant's own request before a decision is made.

    Raises:
        AdoptionRequestNotFoundError: Unknown id, or not the applicant's request.
        InvalidTransitionError: The request is past the withdrawable statuses.
    """
    applicant_id = applicant.id

    async def plan(request: AdoptionRequest, now: datetime) -> _PlannedChange:
        if request.applicant_id != applicant_id:
            raise AdoptionRequestNotFoundError(request.id)
        check_withdrawal(request.status)
        return _PlannedChange(
            target=AdoptionStatus.WITHDRAWN,
            values={
                "status": AdoptionStatus.WITHDRAWN,
                "reviewer_id": applicant_id,
                "reviewed_at": now,
                "updated_at": now,
                "follow_up_required": False,
                "follow_up_date": None,
            },
            message=_summary(request.status, AdoptionStatus.WITHDRAWN, reason),
        )

    return await _apply_change(
        session,
        request_id,
        applicant,
        plan,
        audit_action="adoption_withdraw",
        request_ip=request_ip,
    )


async def add_communication(
    session: AsyncSession,
    request_id: uuid.UUID,
    author: User,
    *,
    entry_type: str,
    message: str,
) -> AdoptionCommunication:
    """Append a manual entry (note, email, phone, interview) to a request's log."""
    authorize(author, Operation.ADD_COMMUNICATION)
    author_id = author.id
    request = await load_request(session, request_id)
    if request is None:
        raise AdoptionRequestNotFoundError(request_id)

    entry = AdoptionCommunication(request_id=request_id, type=entry_type, message=message, author_id=author_id)
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    logger.info(f"User {author_id} added a {entry_type} entry to adoption request {request_id}")
    return entry
