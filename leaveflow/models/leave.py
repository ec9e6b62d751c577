# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase
from leaveflow.models.enums import LeaveStatus


def _now_utc() -> datetime:
    return datetime.now(UTC)


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request and its approval workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_employee_status", "employee_id", "status"),
        sa.Index("ix_leave_manager_status", "manager_id", "status"),
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_date_order"),
    )

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("app_user.id"), nullable=False),
    )
    # Snapshot of the employee's manager at creation time.
    manager_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("app_user.id"), nullable=False),
    )
    type: str = Field(max_length=20)
    start_date: date
    end_date: date
    reason: str
    status: str = Field(
        default=LeaveStatus.PENDING, max_length=20, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )
    ai_analysis: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    manager_ai_recommendation: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    gmail_thread_id: str | None = Field(default=None, max_length=255)
    gmail_request_msg_id: str | None = Field(default=None, max_length=255)
    gmail_decision_msg_id: str | None = Field(default=None, max_length=255)
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    updated_at: datetime = Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
