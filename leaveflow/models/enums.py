from __future__ import annotations

import enum


class Role(enum.StrEnum):
    """Closed set of user roles."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class LeaveType(enum.StrEnum):
    """Kind of leave being requested."""

    CASUAL = "CASUAL"
    SICK = "SICK"
    EARNED = "EARNED"
    UNPAID = "UNPAID"


class LeaveStatus(enum.StrEnum):
    """State machine for leave requests. Everything except PENDING is terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TimelineAction(enum.StrEnum):
    """Action recorded on a leave request's timeline."""

    CREATED = "CREATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class DecisionAction(enum.StrEnum):
    """Action a decision token is bound to."""

    APPROVE = "approve"
    REJECT = "reject"


class EmailDecision(enum.StrEnum):
    """Decision extracted from an inbound email reply."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"
    UNCLEAR = "UNCLEAR"


class MessageOutcome(enum.StrEnum):
    """Per-message result of an inbound mail poll."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    ERROR = "error"
