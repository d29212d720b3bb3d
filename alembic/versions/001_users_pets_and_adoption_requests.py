"""Initial migration: users, pets, adoption requests, communications and audit_logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(JSONB(), "postgresql")

_LIVE_PREDICATE = "status NOT IN ('rejected', 'withdrawn', 'completed')"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("status", sa.String(30), nullable=False, server_default="active"),
        sa.Column("email_verified", sa.Boolean, nullable=False, server_default="1"),
        sa.Column("failed_login_attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("first_failed_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lockout_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("lock_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("password_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deletion_requested", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "role IN ('user', 'volunteer', 'foster', 'staff', 'admin', 'super_admin')",
            name="ck_user_role",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'suspended', 'banned', 'pending_verification')",
            name="ck_user_status",
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Pets
    op.create_table(
        "pets",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("species", sa.String(20), nullable=False),
        sa.Column("breed", sa.String(100), nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(1000), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("adopted_by", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("adoption_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("inquiry_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('available', 'pending_adoption', 'adopted', 'not_available')",
            name="ck_pet_status",
        ),
    )
    op.create_index("ix_pets_status", "pets", ["status"])

    op.create_table(
        "user_adopted_pets",
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            primary_key=True,
        ),
        sa.Column(
            "pet_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("pets.id", ondelete="RESTRICT"),
            primary_key=True,
        ),
        sa.Column("adopted_at", sa.DateTime(timezone=True), nullable=False),
    )

    # Adoption requests
    op.create_table(
        "adoption_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "applicant_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("pet_id", sa.Uuid(as_uuid=True), sa.ForeignKey("pets.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("street", sa.String(200), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("region", sa.String(100), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("preferred_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("housing_type", sa.String(20), nullable=True),
        sa.Column("has_yard", sa.Boolean, nullable=True),
        sa.Column("other_pets", sa.String(500), nullable=True),
        sa.Column("experience", sa.Text, nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("source", sa.String(20), nullable=False, server_default="website"),
        sa.Column(
            "reviewer_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.Text, nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("follow_up_required", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("follow_up_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rereview_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'under_review', 'interview_scheduled', 'approved', "
            "'rejected', 'completed', 'withdrawn')",
            name="ck_adoption_request_status",
        ),
        sa.CheckConstraint(
            "status != 'rejected' OR (rejection_reason IS NOT NULL AND rejection_reason != '')",
            name="ck_adoption_request_rejection_reason",
        ),
    )
    # At most one live request per (applicant, pet).
    op.create_index(
        "uq_adoption_requests_live_pair",
        "adoption_requests",
        ["applicant_id", "pet_id"],
        unique=True,
        postgresql_where=sa.text(_LIVE_PREDICATE),
        sqlite_where=sa.text(_LIVE_PREDICATE),
    )
    op.create_index("ix_adoption_requests_status", "adoption_requests", ["status"])
    op.create_index("ix_adoption_requests_applicant_id", "adoption_requests", ["applicant_id"])
    op.create_index("ix_adoption_requests_pet_id", "adoption_requests", ["pet_id"])
    op.create_index(
        "ix_adoption_requests_follow_up",
        "adoption_requests",
        ["follow_up_required", "follow_up_date"],
    )

    op.create_table(
        "adoption_communications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "request_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("adoption_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("author_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "type IN ('status_change', 'note', 'email', 'phone', 'interview', 'system')",
            name="ck_adoption_communication_type",
        ),
    )
    op.create_index("ix_adoption_communications_request_id", "adoption_communications", ["request_id"])

    # Audit trail
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_ids", _JSON, nullable=True),
        sa.Column("request_ip", sa.String(45), nullable=True),
        sa.Column("request_metadata", _JSON, nullable=True),
    )
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("adoption_communications")
    op.drop_table("adoption_requests")
    op.drop_table("user_adopted_pets")
    op.drop_table("pets")
    op.drop_table("users")
