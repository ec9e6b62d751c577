# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, Query

from leaveflow.api.deps import ApproverDep, AuthDep, ClassifierDep
from leaveflow.db import SessionDep
from leaveflow.schemas.ai import ChatPayload, ChatReply, InsightsResponse, PatternPayload, PatternResponse
from leaveflow.services import assistant as assistant_service

ai_router = APIRouter(prefix="/ai", tags=["ai"])


@ai_router.post("/chat", response_model=ChatReply)
async def chat(payload: ChatPayload, session: SessionDep, auth: AuthDep, classifier: ClassifierDep) -> ChatReply:
    """Ask the HR assistant a question."""
    return await assistant_service.chat(session, auth, payload, classifier)


@ai_router.post("/analyze-patterns", response_model=PatternResponse)
async def analyze_patterns(
    payload: PatternPayload,
    session: SessionDep,
    auth: AuthDep,
    classifier: ClassifierDep,
) -> PatternResponse:
    """Predict leave patterns for yourself, a team member, or (admins) anyone."""
    return await assistant_service.analyze_patterns(session, auth, payload.employee_id, payload.timeframe, classifier)


@ai_router.get("/insights", response_model=InsightsResponse)
async def insights(
    session: SessionDep,
    auth: ApproverDep,
    limit: int = Query(default=10, ge=1, le=100),
) -> InsightsResponse:
    """Pending requests ranked for attention."""
    return await assistant_service.insights(session, auth, limit)
