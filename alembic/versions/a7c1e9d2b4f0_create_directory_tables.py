"""create institutions, admin accounts and audit entries

Revision ID: a7c1e9d2b4f0
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration:
1. Creates the institutions table
2. Creates the admin_accounts table with a partial unique index allowing
   at most one approved admin per institution
3. Creates the append-only audit_entries table

Enum types store member NAMES (e.g. 'APPROVED'), matching SQLAlchemy's
default Enum behaviour.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c1e9d2b4f0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ACCOUNT_STATUSES = (
    "PENDING",
    "APPROVED",
    "REJECTED",
    "INSTITUTION_DELETED",
    "REMOVED",
    "CODE_REGENERATED",
)
ACTION_TYPES = (
    "INSTITUTION_CREATED",
    "INSTITUTION_DELETED",
    "ADMIN_REGISTERED",
    "ADMIN_APPROVED",
    "ADMIN_REJECTED",
    "ADMIN_REMOVED",
    "VERIFICATION_CODE_REGENERATED",
    "ADMIN_ALLOWED_REAPPLY",
    "ADMIN_REAPPLICATION_SUBMITTED",
    "ADMIN_CODE_VALIDATED",
    "AUDIT_LOGS_PURGED",
    "AUDIT_LOGS_BULK_DELETED",
)
ACTOR_ROLES = ("SUPER_ADMIN", "ADMIN", "SYSTEM")
TARGET_TYPES = ("ADMIN", "INSTITUTION", "AUDIT_LOG")
OUTCOMES = ("SUCCESS", "FAILED")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the directory tables."""
    bind = op.get_bind()

    account_status = postgresql.ENUM(*ACCOUNT_STATUSES, name="admin_account_status", create_type=False)
    action_type = postgresql.ENUM(*ACTION_TYPES, name="audit_action_type", create_type=False)
    actor_role = postgresql.ENUM(*ACTOR_ROLES, name="actor_role", create_type=False)
    target_type = postgresql.ENUM(*TARGET_TYPES, name="audit_target_type", create_type=False)
    outcome = postgresql.ENUM(*OUTCOMES, name="audit_outcome", create_type=False)
    for enum_type in (account_status, action_type, actor_role, target_type, outcome):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "institutions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.String(length=20), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("verification_code", sa.String(length=64), nullable=False),
        sa.Column("verification_code_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("verification_code"),
        sa.UniqueConstraint("admin_id"),
    )
    op.create_index("ix_institutions_name", "institutions", ["name"])
    op.create_index(
        "ix_institutions_verification_code_expires_at",
        "institutions",
        ["verification_code_expires_at"],
    )

    op.create_table(
        "admin_accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("status", account_status, nullable=False),
        sa.Column("status_detail", postgresql.JSON(), nullable=False),
        sa.Column("institution_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("rejection_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("can_reapply", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("history", postgresql.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_transition_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phone"),
        sa.ForeignKeyConstraint(["institution_id"], ["institutions.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_admin_accounts_status", "admin_accounts", ["status"])
    op.create_index("ix_admin_accounts_institution_id", "admin_accounts", ["institution_id"])
    op.create_index(
        "ix_admin_accounts_email_lower",
        "admin_accounts",
        [sa.text("lower(email)")],
        unique=True,
    )
    op.create_index(
        "ix_admin_accounts_one_approved_per_institution",
        "admin_accounts",
        ["institution_id"],
        unique=True,
        postgresql_where=sa.text("status = 'APPROVED'"),
    )

    op.create_table(
        "audit_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", action_type, nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor_role", actor_role, nullable=False),
        sa.Column("actor_name", sa.String(length=200), nullable=True),
        sa.Column("target_type", target_type, nullable=False),
        sa.Column("target_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("target_name", sa.String(length=200), nullable=True),
        sa.Column("details", postgresql.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("outcome", outcome, nullable=False),
        sa.Column("error_code", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entries_timestamp_id", "audit_entries", ["timestamp", "id"])
    op.create_index("ix_audit_entries_action_type", "audit_entries", ["action_type"])
    op.create_index("ix_audit_entries_target", "audit_entries", ["target_type", "target_id"])


def downgrade() -> None:
    """Drop the directory tables and their enum types."""
    op.drop_table("audit_entries")
    op.drop_table("admin_accounts")
    op.drop_table("institutions")

    bind = op.get_bind()
    for name in (
        "audit_outcome",
        "audit_target_type",
        "actor_role",
        "audit_action_type",
        "admin_account_status",
    ):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
