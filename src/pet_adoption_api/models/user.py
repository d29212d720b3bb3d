"""User model: identity, role, account status and login-attempt bookkeeping."""

import enum
from datetime import UTC, datetime

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pet_adoption_api.models.base import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime, UUIDMixin


class UserRole(enum.StrEnum):
    """Roles in ascending order of privilege."""

    USER = "user"
    VOLUNTEER = "volunteer"
    FOSTER = "foster"
    STAFF = "staff"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AccountStatus(enum.StrEnum):
    """Administrative account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    BANNED = "banned"
    PENDING_VERIFICATION = "pending_verification"


# A user's adopted-pets collection. The composite key makes re-adding a pet a no-op.
user_adopted_pets = Table(
    "user_adopted_pets",
    Base.metadata,
    Column("user_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), primary_key=True),
    Column("pet_id", Uuid(as_uuid=True), ForeignKey("pets.id", ondelete="RESTRICT"), primary_key=True),
    Column("adopted_at", UTCDateTime(), default=lambda: datetime.now(UTC), nullable=False),
)


class User(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """A registered account.

    Attributes:
        role: One of ``UserRole``.
        status: One of ``AccountStatus``.
        email_verified: Whether the email address has been confirmed.
        failed_login_attempts: Failed logins in the current counting window.
        first_failed_login_at: Start of the current failed-login window.
        lockout_count: Consecutive lockouts since the last successful login.
        lock_until: Logins and tokens are refused until this instant.
        password_changed_at: Tokens issued at or before this instant are stale.
        deletion_requested: The owner asked for the account to be removed.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER, server_default="user")
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AccountStatus.ACTIVE,
        server_default="active",
    )
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    first_failed_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    lockout_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    lock_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    deletion_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'volunteer', 'foster', 'staff', 'admin', 'super_admin')",
            name="ck_user_role",
        ),
        CheckConstraint(
            "status IN ('active', 'inactive', 'suspended', 'banned', 'pending_verification')",
            name="ck_user_status",
        ),
    )
