from sqlmodel import SQLModel

from leaveflow.models.base import TimestampMixin, UUIDBase
from leaveflow.models.enums import (
    DecisionAction,
    EmailDecision,
    LeaveStatus,
    LeaveType,
    MessageOutcome,
    Role,
    TimelineAction,
)
from leaveflow.models.gmail_token import GmailToken
from leaveflow.models.leave import LeaveRequest
from leaveflow.models.timeline import LeaveTimelineEvent
from leaveflow.models.user import User

__all__ = [
    "DecisionAction",
    "EmailDecision",
    "GmailToken",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveTimelineEvent",
    "LeaveType",
    "MessageOutcome",
    "Role",
    "SQLModel",
    "TimelineAction",
    "TimestampMixin",
    "UUIDBase",
    "User",
]
