# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import UUIDBase


def _now_utc() -> datetime:
    return datetime.now(UTC)


class LeaveTimelineEvent(UUIDBase, table=True):
    """Append-only audit entry on a leave request.

    ``seq`` 0 is always CREATED; the unique ``(leave_id, seq)`` pair means a
    second terminal event for the same request cannot be inserted.
    """

    __tablename__ = "leave_timeline_event"
    __table_args__ = (sa.UniqueConstraint("leave_id", "seq", name="uq_timeline_leave_seq"),)

    leave_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    seq: int
    action: str = Field(max_length=20)
    actor_id: uuid.UUID
    comment: str | None = None
    timestamp: datetime = Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
