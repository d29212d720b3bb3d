"""Adoption request endpoints: applications, review transitions, withdrawal and follow-ups."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.core.config import Settings, get_settings
from pet_adoption_api.core.dependencies import (
    get_async_session,
    get_current_user,
    get_request_ip,
    require_operation,
    throttle,
)
from pet_adoption_api.core.rate_limits import ADOPTION_CREATE, ADOPTION_UPDATE
from pet_adoption_api.lib.guard.permissions import Operation
from pet_adoption_api.models.adoption_request import AdoptionCommunication, AdoptionRequest
from pet_adoption_api.models.user import User
from pet_adoption_api.schemas.adoption import (
    AdoptionRequestCreate,
    AdoptionRequestDetailResponse,
    AdoptionRequestSummaryResponse,
    AdoptionStatusEnum,
    CommunicationCreate,
    CommunicationResponse,
    PaginatedAdoptionRequestResponse,
    StatusTransitionRequest,
    WithdrawRequest,
)
from pet_adoption_api.schemas.common import ErrorResponse, PaginationMeta, PaginationParams
from pet_adoption_api.services import adoption_service

adoptions_router = APIRouter(prefix="/adoption-requests", tags=["adoption-requests"])


@adoptions_router.post(
    "",
    response_model=AdoptionRequestDetailResponse,
    status_code=201,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
async def create_adoption_request(
    request: AdoptionRequestCreate,
    current_user: Annotated[User, Depends(throttle(ADOPTION_CREATE, Operation.CREATE))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> AdoptionRequest:
    """Apply to adopt a pet."""
    fields = request.model_dump(exclude={"pet_id"})
    return await adoption_service.create_request(session, current_user, request.pet_id, fields)


@adoptions_router.get("", response_model=PaginatedAdoptionRequestResponse)
async def list_adoption_requests(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    status: AdoptionStatusEnum | None = None,
    pet_id: uuid.UUID | None = None,
    applicant_id: uuid.UUID | None = None,
    follow_up_due: Annotated[bool, Query(description="Only requests whose follow-up date has passed")] = False,
) -> PaginatedAdoptionRequestResponse:
    """List adoption requests; non-staff callers only see their own."""
    requests, total = await adoption_service.list_requests(
        session,
        current_user,
        status=status,
        pet_id=pet_id,
        applicant_id=applicant_id,
        follow_up_due=follow_up_due,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedAdoptionRequestResponse(
        items=[AdoptionRequestSummaryResponse.model_validate(r) for r in requests],
        pagination=PaginationMeta.build(total, pagination.page, pagination.page_size),
    )


@adoptions_router.get("/follow-ups/due", response_model=list[AdoptionRequestSummaryResponse])
async def list_due_follow_ups(
    _current_user: Annotated[User, Depends(require_operation(Operation.VIEW_ALL))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[AdoptionRequest]:
    """Live requests whose follow-up is due (staff only)."""
    return await adoption_service.list_due_follow_ups(session, limit=limit)


@adoptions_router.get(
    "/{request_id}",
    response_model=AdoptionRequestDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_adoption_request(
    request_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> AdoptionRequest:
    """Get one request with its communication log (applicant or staff)."""
    return await adoption_service.get_request(session, request_id, current_user)


@adoptions_router.patch(
    "/{request_id}/status",
    response_model=AdoptionRequestDetailResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
async def transition_adoption_request(
    request_id: uuid.UUID,
    request: StatusTransitionRequest,
    current_user: Annotated[User, Depends(throttle(ADOPTION_UPDATE, Operation.TRANSITION))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    client_ip: Annotated[str, Depends(get_request_ip)],
) -> AdoptionRequest:
    """Move a request along the review workflow (staff only)."""
    return await adoption_service.transition_request(
        session,
        request_id,
        request.status,
        current_user,
        notes=request.notes,
        rejection_reason=request.rejection_reason,
        settings=settings,
        request_ip=client_ip,
    )


@adoptions_router.post(
    "/{request_id}/withdraw",
    response_model=AdoptionRequestDetailResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def withdraw_adoption_request(
    request_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    client_ip: Annotated[str, Depends(get_request_ip)],
    request: WithdrawRequest | None = None,
) -> AdoptionRequest:
    """Withdraw your own request before a decision is made."""
    return await adoption_service.withdraw_request(
        session,
        request_id,
        current_user,
        reason=request.reason if request else None,
        request_ip=client_ip,
    )


@adoptions_router.post(
    "/{request_id}/communications",
    response_model=CommunicationResponse,
    status_code=201,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def add_communication(
    request_id: uuid.UUID,
    request: CommunicationCreate,
    current_user: Annotated[User, Depends(require_operation(Operation.ADD_COMMUNICATION))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> AdoptionCommunication:
    """Add a note, email, phone or interview entry to a request's log (staff only)."""
    return await adoption_service.add_communication(
        session,
        request_id,
        current_user,
        entry_type=request.type,
        message=request.message,
    )
