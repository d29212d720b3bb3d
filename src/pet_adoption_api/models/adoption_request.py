"""Adoption request model and its append-only communication log.

At most one *live* request (status not in rejected/withdrawn/completed) may
exist per (applicant, pet) pair. The partial unique index below is the
authoritative guard; the service-level pre-check only produces a nicer error
sooner.
"""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    event,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pet_adoption_api.models.base import Base, TimestampMixin, UTCDateTime, UUIDMixin


class AdoptionStatus(enum.StrEnum):
    """Adoption request workflow status."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


# Statuses that free the (applicant, pet) pair for a new application.
CLOSED_STATUSES: frozenset[AdoptionStatus] = frozenset(
    {AdoptionStatus.REJECTED, AdoptionStatus.WITHDRAWN, AdoptionStatus.COMPLETED}
)

_LIVE_PREDICATE = "status NOT IN ('rejected', 'withdrawn', 'completed')"


class CommunicationType(enum.StrEnum):
    """Kinds of communication-log entries."""

    STATUS_CHANGE = "status_change"
    NOTE = "note"
    EMAIL = "email"
    PHONE = "phone"
    INTERVIEW = "interview"
    SYSTEM = "system"


class HousingType(enum.StrEnum):
    HOUSE = "house"
    APARTMENT = "apartment"
    CONDO = "condo"
    FARM = "farm"
    OTHER = "other"


class AdoptionRequest(Base, UUIDMixin, TimestampMixin):
    """An application by a user to adopt a pet.

    Attributes:
        applicant_id: The applying user.
        pet_id: The pet applied for.
        status: Workflow state, one of ``AdoptionStatus``.
        source: Channel the application came through.
        reviewer_id: User who made the latest status change.
        reviewed_at: When the latest status change happened.
        admin_notes: Notes from the latest reviewer.
        rejection_reason: Required while the request is rejected.
        follow_up_required: A follow-up is scheduled.
        follow_up_date: When the scheduled follow-up is due.
        rereview_count: Times the request was reopened after rejection.
    """

    __tablename__ = "adoption_requests"

    applicant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    pet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("pets.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Applicant contact details
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    street: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    preferred_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Housing and experience
    housing_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    has_yard: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    other_pets: Mapped[str | None] = mapped_column(String(500), nullable=True)
    experience: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Workflow
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AdoptionStatus.PENDING,
        server_default="pending",
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="website", server_default="website")
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    follow_up_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    rereview_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    communications: Mapped[list["AdoptionCommunication"]] = relationship(
        order_by="AdoptionCommunication.created_at",
        lazy="selectin",
        viewonly=True,
    )

    @property
    def is_live(self) -> bool:
        return self.status not in CLOSED_STATUSES

    @property
    def applicant_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'under_review', 'interview_scheduled', 'approved', "
            "'rejected', 'completed', 'withdrawn')",
            name="ck_adoption_request_status",
        ),
        CheckConstraint(
            "status != 'rejected' OR (rejection_reason IS NOT NULL AND rejection_reason != '')",
            name="ck_adoption_request_rejection_reason",
        ),
        Index(
            "uq_adoption_requests_live_pair",
            "applicant_id",
            "pet_id",
            unique=True,
            postgresql_where=text(_LIVE_PREDICATE),
            sqlite_where=text(_LIVE_PREDICATE),
        ),
        Index("ix_adoption_requests_status", "status"),
        Index("ix_adoption_requests_applicant_id", "applicant_id"),
        Index("ix_adoption_requests_pet_id", "pet_id"),
        Index("ix_adoption_requests_follow_up", "follow_up_required", "follow_up_date"),
    )


class AdoptionCommunication(Base, UUIDMixin):
    """One immutable entry in a request's communication log."""

    __tablename__ = "adoption_communications"

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("adoption_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('status_change', 'note', 'email', 'phone', 'interview', 'system')",
            name="ck_adoption_communication_type",
        ),
    )


@event.listens_for(AdoptionCommunication, "before_update")
def _reject_communication_update(_mapper: object, _connection: object, target: AdoptionCommunication) -> None:
    msg = f"Communication log entry {target.id} is append-only"
    raise ValueError(msg)
