# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from leaveflow.exceptions import AuthorizationError, NotFoundError
from leaveflow.models.enums import LeaveStatus, Role
from leaveflow.models.leave import LeaveRequest
from leaveflow.models.user import User
from leaveflow.schemas.ai import ChatReply, InsightItem, InsightsResponse, PatternResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.schemas.ai import ChatPayload
    from leaveflow.schemas.auth import AuthContext
    from leaveflow.services.classifier import ClassifierGateway

ATTENTION_URGENCY = 4
ATTENTION_AGE = timedelta(days=7)

_STATUS_KEYWORDS = ("my leave", "status")


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _urgency(leave: LeaveRequest) -> int:
    urgency = (leave.ai_analysis or {}).get("urgency")
    return urgency if isinstance(urgency, int) else 0


async def chat(
    session: AsyncSession,
    auth: AuthContext,
    payload: ChatPayload,
    classifier: ClassifierGateway,
) -> ChatReply:
    """Answer an assistant question, adding the caller's recent leave when they ask about it."""
    context: dict[str, Any] = {**payload.context, "role": auth.role.value, "user_id": str(auth.user_id)}
    if any(keyword in payload.message.lower() for keyword in _STATUS_KEYWORDS):
        result = await session.execute(
            select(LeaveRequest)
            .where(col(LeaveRequest.employee_id) == auth.user_id)
            .order_by(col(LeaveRequest.created_at).desc())
            .limit(3)
        )
        context["recent_leaves"] = [
            {
                "type": leave.type,
                "status": leave.status,
                "start_date": leave.start_date.isoformat(),
                "end_date": leave.end_date.isoformat(),
            }
            for leave in result.scalars().all()
        ]
    return await classifier.chat(payload.message, auth.role.value, context)


async def analyze_patterns(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID | None,
    timeframe: int,
    classifier: ClassifierGateway,
) -> PatternResponse:
    """Run pattern prediction over an employee's recent leave.

    Employees may only analyze themselves, managers their own team.
    """
    target_id = employee_id or auth.user_id
    if target_id != auth.user_id:
        if auth.role == Role.EMPLOYEE:
            raise AuthorizationError("Employees can only analyze their own patterns")
        if auth.role == Role.MANAGER:
            target = await session.get(User, target_id)
            if target is None or target.manager_id != auth.user_id:
                raise AuthorizationError("You can only analyze your team members")

    employee = await session.get(User, target_id)
    if employee is None:
        raise NotFoundError("Employee not found")

    since = date.today() - timedelta(days=timeframe)
    result = await session.execute(
        select(LeaveRequest)
        .where(col(LeaveRequest.employee_id) == target_id, col(LeaveRequest.start_date) >= since)
        .order_by(col(LeaveRequest.start_date))
    )
    history = [
        {
            "type": leave.type,
            "status": leave.status,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
            "duration_days": (leave.end_date - leave.start_date).days + 1,
        }
        for leave in result.scalars().all()
    ]
    analysis = await classifier.predict_patterns({"name": employee.name, "role": employee.role}, history, timeframe)
    return PatternResponse(
        employee_id=target_id,
        timeframe=timeframe,
        analysis=analysis,
        analyzed_at=datetime.now(UTC),
    )


async def insights(session: AsyncSession, auth: AuthContext, limit: int = 10) -> InsightsResponse:
    """Pending requests ordered by priority for the approver's dashboard."""
    filters = [col(LeaveRequest.status) == LeaveStatus.PENDING.value]
    if auth.role == Role.MANAGER:
        filters.append(col(LeaveRequest.manager_id) == auth.user_id)

    result = await session.execute(select(LeaveRequest).where(*filters).order_by(col(LeaveRequest.created_at)))
    pending = list(result.scalars().all())

    employee_ids = {leave.employee_id for leave in pending}
    names: dict[uuid.UUID, str] = {}
    if employee_ids:
        user_result = await session.execute(select(User).where(col(User.id).in_(employee_ids)))
        names = {user.id: user.name for user in user_result.scalars().all()}

    now = datetime.now(UTC)
    items = []
    for leave in pending:
        age = now - _as_utc(leave.created_at)
        items.append(
            InsightItem(
                leave_id=leave.id,
                employee=names.get(leave.employee_id),
                type=leave.type,
                start_date=leave.start_date,
                end_date=leave.end_date,
                ai_analysis=leave.ai_analysis,
                manager_recommendation=leave.manager_ai_recommendation,
                days_ago=age.days,
                requires_attention=_urgency(leave) >= ATTENTION_URGENCY or age > ATTENTION_AGE,
            )
        )

    urgency_by_id = {leave.id: _urgency(leave) for leave in pending}
    items.sort(key=lambda item: (not item.requires_attention, -urgency_by_id[item.leave_id]))
    return InsightsResponse(
        total_pending=len(pending),
        high_priority=sum(1 for item in items if item.requires_attention),
        insights=items[:limit],
        generated_at=now,
    )
