# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from leaveflow.models.enums import LeaveStatus, LeaveType, TimelineAction

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateLeavePayload(BaseModel):
    """Request body for submitting a new leave request."""

    type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(min_length=1, max_length=2000)


class DecisionPayload(BaseModel):
    """Request body for approve/reject actions."""

    comment: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Identity of the employee or manager on a request, resolved for display."""

    id: uuid.UUID
    name: str | None = None
    email: str | None = None


class TimelineEventResponse(BaseModel):
    action: TimelineAction
    actor_id: uuid.UUID
    comment: str | None
    timestamp: datetime


class GmailCorrelation(BaseModel):
    thread_id: str | None = None
    request_msg_id: str | None = None
    decision_msg_id: str | None = None


class LeaveResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee: UserSummary
    manager: UserSummary
    type: LeaveType
    start_date: date
    end_date: date
    reason: str
    status: LeaveStatus
    ai_analysis: dict[str, Any] | None
    manager_ai_recommendation: dict[str, Any] | None
    gmail: GmailCorrelation
    timeline: list[TimelineEventResponse]
    decided_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LeaveListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveResponse]
    total: int
