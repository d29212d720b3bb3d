"""AuditLog model: immutable trail of privileged actions."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from pet_adoption_api.models.base import Base, UTCDateTime, UUIDMixin

_JSON = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(Base, UUIDMixin):
    """Write-only record of who changed what (no updates or deletes)."""

    __tablename__ = "audit_logs"

    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_ids: Mapped[list | None] = mapped_column(_JSON, nullable=True)
    request_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    request_metadata: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
