"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
    )
    op.create_index("ix_app_user_created_at", "app_user", ["created_at"])
    op.create_index("ix_app_user_role", "app_user", ["role"])
    op.create_index("ix_app_user_manager_id", "app_user", ["manager_id"])

    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("app_user.id"), nullable=False),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("app_user.id"), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="PENDING", nullable=False),
        sa.Column("ai_analysis", sa.JSON(), nullable=True),
        sa.Column("manager_ai_recommendation", sa.JSON(), nullable=True),
        sa.Column("gmail_thread_id", sa.String(length=255), nullable=True),
        sa.Column("gmail_request_msg_id", sa.String(length=255), nullable=True),
        sa.Column("gmail_decision_msg_id", sa.String(length=255), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_date_order"),
    )
    op.create_index("ix_leave_request_created_at", "leave_request", ["created_at"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_employee_status", "leave_request", ["employee_id", "status"])
    op.create_index("ix_leave_manager_status", "leave_request", ["manager_id", "status"])

    op.create_table(
        "leave_timeline_event",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "leave_id", sa.Uuid(), sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("comment", sa.String(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("leave_id", "seq", name="uq_timeline_leave_seq"),
    )
    op.create_index("ix_leave_timeline_event_leave_id", "leave_timeline_event", ["leave_id"])

    op.create_table(
        "gmail_token",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("mailbox", sa.String(length=255), nullable=False, unique=True),
        sa.Column("connected_by", sa.Uuid(), nullable=True),
        sa.Column("access_token", sa.String(), nullable=False),
        sa.Column("refresh_token", sa.String(), nullable=True),
        sa.Column("scope", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("gmail_token")
    op.drop_index("ix_leave_timeline_event_leave_id", table_name="leave_timeline_event")
    op.drop_table("leave_timeline_event")
    op.drop_index("ix_leave_manager_status", table_name="leave_request")
    op.drop_index("ix_leave_employee_status", table_name="leave_request")
    op.drop_index("ix_leave_request_status", table_name="leave_request")
    op.drop_index("ix_leave_request_created_at", table_name="leave_request")
    op.drop_table("leave_request")
    op.drop_index("ix_app_user_manager_id", table_name="app_user")
    op.drop_index("ix_app_user_role", table_name="app_user")
    op.drop_index("ix_app_user_created_at", table_name="app_user")
    op.drop_table("app_user")
