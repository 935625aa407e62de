"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

Users, tokens, intakes, projects, milestones, notifications, notification
preferences and the data deletion log.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("full_name", sa.String, nullable=True),
        sa.Column("phone", sa.String, nullable=True),
        sa.Column("company", sa.String, nullable=True),
        sa.Column("hashed_password", sa.String, nullable=False),
        sa.Column("role", sa.String, nullable=False, server_default="client"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "legal_hold", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "inactivity_warning_sent_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.CheckConstraint(
            "role IN ('client', 'admin', 'super_admin')",
            name="ck_user_role",
        ),
    )

    # --- tokens ---
    op.create_table(
        "tokens",
        sa.Column("token_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.String, nullable=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String, nullable=False, unique=True, index=True),
        sa.Column("prefix", sa.String, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("user_id", "name", name="uq_token_user_name"),
    )

    # --- intakes ---
    op.create_table(
        "intakes",
        sa.Column("intake_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("service_type", sa.String, nullable=True, index=True),
        sa.Column("company_name", sa.String, nullable=True),
        sa.Column("segment", sa.String, nullable=True),
        sa.Column("objectives", sa.Text, nullable=True),
        sa.Column("budget", sa.String, nullable=True),
        sa.Column("deadline", sa.String, nullable=True),
        sa.Column("features", sa.Text, nullable=True),
        sa.Column("references", sa.Text, nullable=True),
        sa.Column("integrations", sa.Text, nullable=True),
        sa.Column("additional_info", JSONB, nullable=True),
        sa.Column(
            "status", sa.String, nullable=False, server_default="draft", index=True
        ),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "reviewed_by_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "is_contractual", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("anonymized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'under_review', 'approved', 'rejected')",
            name="ck_intake_status",
        ),
        sa.CheckConstraint(
            "service_type IS NULL OR service_type IN ('erp_basic', 'erp_ecommerce', "
            "'erp_premium', 'landing_ai', 'landing_ai_whatsapp')",
            name="ck_intake_service_type",
        ),
    )

    # --- projects ---
    op.create_table(
        "projects",
        sa.Column("project_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "intake_id",
            UUID(as_uuid=True),
            sa.ForeignKey("intakes.intake_id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "status",
            sa.String,
            nullable=False,
            server_default="awaiting_approval",
            index=True,
        ),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "is_contractual", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "status IN ('awaiting_approval', 'active', 'paused', 'completed', "
            "'cancelled', 'archived')",
            name="ck_project_status",
        ),
        sa.CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_project_progress_range"
        ),
    )

    # --- milestones ---
    op.create_table(
        "milestones",
        sa.Column(
            "milestone_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column(
            "project_id",
            UUID(as_uuid=True),
            sa.ForeignKey("projects.project_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("order", sa.Integer, nullable=False),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "project_id", "order", name="uq_milestone_project_order"
        ),
        sa.CheckConstraint(
            '"order" >= 1 AND "order" <= 4', name="ck_milestone_order_range"
        ),
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column(
            "notification_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("type", sa.String, nullable=False),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("message", sa.String, nullable=False),
        sa.Column("metadata", JSONB, nullable=True),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )

    # --- notification_preferences ---
    op.create_table(
        "notification_preferences",
        sa.Column(
            "preference_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("type", sa.String, nullable=False),
        sa.Column(
            "in_app_enabled", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "email_enabled", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column("push_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("user_id", "type", name="uq_notification_preference_type"),
    )

    # --- data_deletion_logs (no FK: outlives the user row) ---
    op.create_table(
        "data_deletion_logs",
        sa.Column("log_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("user_email", sa.String, nullable=False),
        sa.Column("reason", sa.String, nullable=False),
        sa.Column("deleted_by", UUID(as_uuid=True), nullable=True),
        sa.Column("data_types", JSONB, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )


def downgrade() -> None:
    op.drop_table("data_deletion_logs")
    op.drop_table("notification_preferences")
    op.drop_table("notifications")
    op.drop_table("milestones")
    op.drop_table("projects")
    op.drop_table("intakes")
    op.drop_table("tokens")
    op.drop_table("users")
