"""Pydantic v2 schemas for adoption request operations."""

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from pet_adoption_api.schemas.common import PaginationMeta


class AdoptionStatusEnum(enum.StrEnum):
    """Adoption request workflow status."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


class HousingTypeEnum(enum.StrEnum):
    HOUSE = "house"
    APARTMENT = "apartment"
    CONDO = "condo"
    FARM = "farm"
    OTHER = "other"


class ManualCommunicationTypeEnum(enum.StrEnum):
    """Entry types staff may add by hand; ``status_change`` and ``system`` are written by the service."""

    NOTE = "note"
    EMAIL = "email"
    PHONE = "phone"
    INTERVIEW = "interview"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AdoptionRequestCreate(BaseModel):
    """Application submitted by an applicant."""

    pet_id: uuid.UUID
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(min_length=6, max_length=20)
    street: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    region: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    message: str = Field(min_length=1, max_length=2000)
    preferred_date: datetime | None = None
    housing_type: HousingTypeEnum | None = None
    has_yard: bool | None = None
    other_pets: str | None = Field(default=None, max_length=500)
    experience: str | None = Field(default=None, max_length=2000)


class StatusTransitionRequest(BaseModel):
    """Reviewer status change."""

    status: AdoptionStatusEnum
    notes: str | None = Field(default=None, max_length=2000)
    rejection_reason: str | None = Field(default=None, max_length=1000)


class WithdrawRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class CommunicationCreate(BaseModel):
    type: ManualCommunicationTypeEnum = ManualCommunicationTypeEnum.NOTE
    message: str = Field(min_length=1, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CommunicationResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    type: str
    message: str
    author_id: uuid.UUID | None = None
    created_at: datetime


class AdoptionRequestSummaryResponse(BaseModel):
    """Adoption request summary for list endpoints."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    applicant_id: uuid.UUID
    pet_id: uuid.UUID
    applicant_name: str
    email: str
    status: AdoptionStatusEnum
    follow_up_required: bool
    follow_up_date: datetime | None = None
    created_at: datetime


class AdoptionRequestDetailResponse(AdoptionRequestSummaryResponse):
    """Full adoption request with review fields and communication log."""

    first_name: str
    last_name: str
    phone: str
    street: str
    city: str
    region: str
    postal_code: str
    message: str
    preferred_date: datetime | None = None
    housing_type: str | None = None
    has_yard: bool | None = None
    other_pets: str | None = None
    experience: str | None = None
    source: str
    reviewer_id: uuid.UUID | None = None
    reviewed_at: datetime | None = None
    admin_notes: str | None = None
    rejection_reason: str | None = None
    rereview_count: int = 0
    communications: list[CommunicationResponse] = []
    updated_at: datetime


class PaginatedAdoptionRequestResponse(BaseModel):
    """Paginated list of adoption requests."""

    items: list[AdoptionRequestSummaryResponse]
    pagination: PaginationMeta
