# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, Field

from leaveflow.models.enums import EmailDecision


def _now_utc() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Classifier results
# ---------------------------------------------------------------------------


class LeaveAnalysis(BaseModel):
    """Structured annotation attached to a leave request after creation."""

    urgency: int = Field(default=3, ge=1, le=5)
    category: str = "general"
    sentiment: str = "neutral"
    risk_score: int = Field(default=2, ge=1, le=5)
    recommendation: str = "manual_review"
    reasoning: str = ""
    suggested_questions: list[str] = Field(default_factory=list)
    confidence: int = Field(default=0, ge=0, le=100)
    processed_at: datetime = Field(default_factory=_now_utc)
    is_fallback: bool = False


class ManagerRecommendation(BaseModel):
    """Decision support produced for the approver."""

    recommendation: str = "manual_review"
    confidence: int = Field(default=50, ge=0, le=100)
    reasoning: str = ""
    conditions: list[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=_now_utc)
    is_fallback: bool = False


class ExtractedDecision(BaseModel):
    """Decision read out of a manager's email reply."""

    decision: EmailDecision = EmailDecision.UNCLEAR
    confidence: int = Field(default=0, ge=0, le=100)
    extracted_info: str = ""


class ChatReply(BaseModel):
    response: str
    helpful: bool
    timestamp: datetime = Field(default_factory=_now_utc)


class PatternAnalysis(BaseModel):
    predictions: list[Any] = Field(default_factory=list)
    risk_level: str = "unknown"
    recommendations: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    health_score: int | None = Field(default=None, ge=1, le=10)
    insights: str | None = None


# ---------------------------------------------------------------------------
# Assistant endpoints
# ---------------------------------------------------------------------------


class ChatPayload(BaseModel):
    message: str = Field(min_length=1, max_length=500)
    context: dict[str, Any] = Field(default_factory=dict)


class PatternPayload(BaseModel):
    employee_id: uuid.UUID | None = None
    timeframe: int = Field(default=90, ge=1, le=365)


class PatternResponse(BaseModel):
    employee_id: uuid.UUID
    timeframe: int
    analysis: PatternAnalysis
    analyzed_at: datetime


class InsightItem(BaseModel):
    leave_id: uuid.UUID
    employee: str | None
    type: str
    start_date: date
    end_date: date
    ai_analysis: dict[str, Any] | None
    manager_recommendation: dict[str, Any] | None
    days_ago: int
    requires_attention: bool


class InsightsResponse(BaseModel):
    total_pending: int
    high_priority: int
    insights: list[InsightItem]
    generated_at: datetime
