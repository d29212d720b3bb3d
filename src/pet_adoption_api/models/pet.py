"""Pet model: the catalog record an adoption request targets."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pet_adoption_api.models.base import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime, UUIDMixin


class PetSpecies(enum.StrEnum):
    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    FISH = "fish"
    TURTLE = "turtle"
    OTHER = "other"


class PetStatus(enum.StrEnum):
    """Catalog status. Only ``available`` pets accept new applications."""

    AVAILABLE = "available"
    PENDING_ADOPTION = "pending_adoption"
    ADOPTED = "adopted"
    NOT_AVAILABLE = "not_available"


class Pet(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """A pet listed for adoption.

    Attributes:
        status: One of ``PetStatus``.
        adopted_by: The user who completed the adoption.
        adoption_date: When the adoption was completed.
        inquiry_count: Number of adoption applications received.
    """

    __tablename__ = "pets"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    species: Mapped[str] = mapped_column(String(20), nullable=False)
    breed: Mapped[str | None] = mapped_column(String(100), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PetStatus.AVAILABLE,
        server_default="available",
    )
    adopted_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
    )
    adoption_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    inquiry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'pending_adoption', 'adopted', 'not_available')",
            name="ck_pet_status",
        ),
        Index("ix_pets_status", "status"),
    )
