# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leaveflow.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from leaveflow.models.enums import DecisionAction, LeaveStatus, LeaveType, Role, TimelineAction
from leaveflow.models.leave import LeaveRequest
from leaveflow.models.timeline import LeaveTimelineEvent
from leaveflow.models.user import User
from leaveflow.schemas.leave import (
    GmailCorrelation,
    LeaveListResponse,
    LeaveResponse,
    TimelineEventResponse,
    UserSummary,
)
from leaveflow.services import mail_templates
from leaveflow.services.tokens import check_decision_binding

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.config import Settings
    from leaveflow.schemas.auth import AuthContext
    from leaveflow.schemas.leave import CreateLeavePayload
    from leaveflow.services.classifier import ClassifierGateway
    from leaveflow.services.notifier import Notifier
    from leaveflow.services.tokens import TokenService

logger = logging.getLogger(__name__)

NOT_PENDING_MESSAGE = "Leave request is not pending"

_TERMINAL_EVENT_SEQ = 1


@dataclass
class LeaveIntegrations:
    """Process-wide collaborators the lifecycle needs for its side effects."""

    classifier: ClassifierGateway
    notifier: Notifier
    tokens: TokenService
    settings: Settings


# ---------------------------------------------------------------------------
# Authorization predicates
# ---------------------------------------------------------------------------


def can_decide(role: Role, actor_id: uuid.UUID, leave: LeaveRequest) -> bool:
    """ADMIN may always decide; a MANAGER only on requests bound to them."""
    if role == Role.ADMIN:
        return True
    return role == Role.MANAGER and leave.manager_id == actor_id


def can_cancel(actor_id: uuid.UUID, leave: LeaveRequest) -> bool:
    """Only the owning employee may withdraw a request."""
    return leave.employee_id == actor_id


def can_view(role: Role, actor_id: uuid.UUID, leave: LeaveRequest) -> bool:
    if role == Role.ADMIN:
        return True
    if role == Role.MANAGER:
        return leave.manager_id == actor_id
    return leave.employee_id == actor_id


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _summary(user_id: uuid.UUID, users: dict[uuid.UUID, User]) -> UserSummary:
    user = users.get(user_id)
    if user is None:
        return UserSummary(id=user_id)
    return UserSummary(id=user.id, name=user.name, email=user.email)


async def _build_leave_responses(session: AsyncSession, leaves: list[LeaveRequest]) -> list[LeaveResponse]:
    """Map leave models to responses, resolving users and timelines in two queries."""
    if not leaves:
        return []

    user_ids = {leave.employee_id for leave in leaves} | {leave.manager_id for leave in leaves}
    user_result = await session.execute(select(User).where(col(User.id).in_(user_ids)))
    users = {user.id: user for user in user_result.scalars().all()}

    event_result = await session.execute(
        select(LeaveTimelineEvent)
        .where(col(LeaveTimelineEvent.leave_id).in_([leave.id for leave in leaves]))
        .order_by(col(LeaveTimelineEvent.seq))
    )
    timelines: dict[uuid.UUID, list[TimelineEventResponse]] = defaultdict(list)
    for event in event_result.scalars().all():
        timelines[event.leave_id].append(
            TimelineEventResponse(
                action=TimelineAction(event.action),
                actor_id=event.actor_id,
                comment=event.comment,
                timestamp=event.timestamp,
            )
        )

    return [
        LeaveResponse(
            id=leave.id,
            employee=_summary(leave.employee_id, users),
            manager=_summary(leave.manager_id, users),
            type=LeaveType(leave.type),
            start_date=leave.start_date,
            end_date=leave.end_date,
            reason=leave.reason,
            status=LeaveStatus(leave.status),
            ai_analysis=leave.ai_analysis,
            manager_ai_recommendation=leave.manager_ai_recommendation,
            gmail=GmailCorrelation(
                thread_id=leave.gmail_thread_id,
                request_msg_id=leave.gmail_request_msg_id,
                decision_msg_id=leave.gmail_decision_msg_id,
            ),
            timeline=timelines[leave.id],
            decided_at=leave.decided_at,
            created_at=leave.created_at,
            updated_at=leave.updated_at,
        )
        for leave in leaves
    ]


async def _get_leave_or_404(session: AsyncSession, leave_id: uuid.UUID, *, fresh: bool = False) -> LeaveRequest:
    """Fetch a leave request. ``fresh`` overwrites any copy already held by the session."""
    query = select(LeaveRequest).where(col(LeaveRequest.id) == leave_id)
    if fresh:
        query = query.execution_options(populate_existing=True)
    result = await session.execute(query)
    leave = result.scalar_one_or_none()
    if leave is None:
        raise NotFoundError("Leave request not found")
    return leave


async def _load_response(session: AsyncSession, leave_id: uuid.UUID) -> LeaveResponse:
    leave = await _get_leave_or_404(session, leave_id, fresh=True)
    return (await _build_leave_responses(session, [leave]))[0]


async def _get_active_actor(session: AsyncSession, actor_id: uuid.UUID) -> User:
    actor = await session.get(User, actor_id)
    if actor is None or not actor.is_active:
        raise AuthorizationError("Actor is not an active user")
    return actor


async def _transition(
    session: AsyncSession,
    leave: LeaveRequest,
    actor_id: uuid.UUID,
    new_status: LeaveStatus,
    action: TimelineAction,
    comment: str | None,
) -> None:
    """Move a PENDING request to a terminal status and append the matching event.

    The UPDATE is conditional on the row still being PENDING, so of two
    concurrent callers only the first to write succeeds. The status change
    and the timeline entry commit together.
    """
    now = datetime.now(UTC)
    values: dict[str, object] = {"status": new_status.value, "updated_at": now}
    if new_status in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
        values["decided_at"] = now

    result = await session.execute(
        update(LeaveRequest)
        .where(
            col(LeaveRequest.id) == leave.id,
            col(LeaveRequest.status) == LeaveStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:  # ty: ignore[unresolved-attribute]
        await session.rollback()
        raise InvalidStateError(NOT_PENDING_MESSAGE)

    session.add(
        LeaveTimelineEvent(
            leave_id=leave.id,
            seq=_TERMINAL_EVENT_SEQ,
            action=action.value,
            actor_id=actor_id,
            comment=comment,
            timestamp=now,
        )
    )
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise InvalidStateError(NOT_PENDING_MESSAGE) from None

    await session.refresh(leave)
    logger.info("Leave %s moved to %s by %s", leave.id, new_status.value, actor_id)


async def _best_effort(session: AsyncSession, step: str, leave_id: uuid.UUID, operation: Awaitable[None]) -> None:
    """Run a post-commit side effect; failure is logged and never reaches the caller.

    The rollback expires every loaded instance, so side effects load what they
    need by id rather than reusing objects from the caller.
    """
    try:
        await operation
    except Exception:
        logger.exception("%s failed for leave %s", step, leave_id)
        await session.rollback()


def _leave_details(leave: LeaveRequest, employee: User) -> mail_templates.LeaveDetails:
    urgency = (leave.ai_analysis or {}).get("urgency")
    return mail_templates.LeaveDetails(
        leave_id=leave.id,
        employee_name=employee.name,
        employee_email=employee.email,
        leave_type=leave.type,
        start_date=leave.start_date.isoformat(),
        end_date=leave.end_date.isoformat(),
        reason=leave.reason,
        urgency=urgency if isinstance(urgency, int) else None,
    )


def decision_url(settings: Settings, leave_id: uuid.UUID, actor_id: uuid.UUID, action: DecisionAction, token: str) -> str:
    query = urlencode({"actor": str(actor_id), "token": token})
    return f"{settings.app_base_url.rstrip('/')}/leaves/{leave_id}/{action.value}?{query}"


async def _team_context(session: AsyncSession, leave: LeaveRequest) -> dict[str, int]:
    team_size = await session.execute(
        select(func.count())
        .select_from(User)
        .where(col(User.manager_id) == leave.manager_id, col(User.is_active).is_(True))
    )
    pending = await session.execute(
        select(func.count())
        .select_from(LeaveRequest)
        .where(
            col(LeaveRequest.manager_id) == leave.manager_id,
            col(LeaveRequest.status) == LeaveStatus.PENDING.value,
        )
    )
    overlapping = await session.execute(
        select(func.count())
        .select_from(LeaveRequest)
        .where(
            col(LeaveRequest.manager_id) == leave.manager_id,
            col(LeaveRequest.status) == LeaveStatus.APPROVED.value,
            col(LeaveRequest.start_date) <= leave.end_date,
            col(LeaveRequest.end_date) >= leave.start_date,
        )
    )
    return {
        "team_size": team_size.scalar_one(),
        "pending_requests": pending.scalar_one(),
        "approved_leave_overlapping": overlapping.scalar_one(),
    }


async def _load_parties(session: AsyncSession, leave_id: uuid.UUID) -> tuple[LeaveRequest, User, User]:
    leave = await _get_leave_or_404(session, leave_id, fresh=True)
    employee = await session.get(User, leave.employee_id)
    manager = await session.get(User, leave.manager_id)
    if employee is None or manager is None:
        raise NotFoundError("Leave request participants not found")
    return leave, employee, manager


async def _annotate(session: AsyncSession, leave_id: uuid.UUID, integrations: LeaveIntegrations) -> None:
    leave, employee, manager = await _load_parties(session, leave_id)
    classifier = integrations.classifier
    analysis = await classifier.classify(
        leave.reason,
        {
            "type": leave.type,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
            "duration_days": (leave.end_date - leave.start_date).days + 1,
            "employee": employee.name,
        },
    )
    recommendation = await classifier.recommend(
        {
            "type": leave.type,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
            "reason": leave.reason,
            "ai_analysis": analysis.model_dump(mode="json"),
        },
        {"name": manager.name, "role": manager.role},
        await _team_context(session, leave),
    )
    await session.execute(
        update(LeaveRequest)
        .where(col(LeaveRequest.id) == leave.id)
        .values(
            ai_analysis=analysis.model_dump(mode="json"),
            manager_ai_recommendation=recommendation.model_dump(mode="json"),
            updated_at=datetime.now(UTC),
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()


async def _notify_manager(session: AsyncSession, leave_id: uuid.UUID, integrations: LeaveIntegrations) -> None:
    if not integrations.notifier.configured:
        logger.info("Notifier not configured; manager for leave %s not emailed", leave_id)
        return

    leave, employee, manager = await _load_parties(session, leave_id)
    settings = integrations.settings
    ttl = timedelta(minutes=settings.decision_token_ttl_minutes)
    urls = {
        action: decision_url(
            settings,
            leave.id,
            manager.id,
            action,
            integrations.tokens.issue_decision(leave.id, manager.id, action, ttl),
        )
        for action in DecisionAction
    }
    email = mail_templates.manager_notification(
        _leave_details(leave, employee),
        manager_name=manager.name,
        approve_url=urls[DecisionAction.APPROVE],
        reject_url=urls[DecisionAction.REJECT],
        dashboard_url=f"{settings.frontend_url.rstrip('/')}/leaves",
    )
    sent = await integrations.notifier.send(manager.email, email.subject, email.html)
    await session.execute(
        update(LeaveRequest)
        .where(col(LeaveRequest.id) == leave.id)
        .values(gmail_thread_id=sent.thread_id, gmail_request_msg_id=sent.id)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    logger.info("Manager %s notified about leave %s", manager.id, leave.id)


async def _notify_employee(
    session: AsyncSession,
    leave_id: uuid.UUID,
    actor_id: uuid.UUID,
    comment: str | None,
    integrations: LeaveIntegrations,
) -> None:
    if not integrations.notifier.configured:
        return
    leave, employee, _ = await _load_parties(session, leave_id)
    actor = await session.get(User, actor_id)

    email = mail_templates.decision_notification(
        _leave_details(leave, employee),
        approved=leave.status == LeaveStatus.APPROVED.value,
        decided_by=actor.name if actor is not None else "your manager",
        comment=comment,
    )
    sent = await integrations.notifier.send(employee.email, email.subject, email.html, thread_id=leave.gmail_thread_id)
    await session.execute(
        update(LeaveRequest)
        .where(col(LeaveRequest.id) == leave.id)
        .values(gmail_decision_msg_id=sent.id)
        .execution_options(synchronize_session=False)
    )
    await session.commit()


async def _decide(
    session: AsyncSession,
    leave_id: uuid.UUID,
    actor_id: uuid.UUID,
    action: DecisionAction,
    comment: str | None,
    integrations: LeaveIntegrations,
) -> LeaveResponse:
    leave = await _get_leave_or_404(session, leave_id)
    actor = await _get_active_actor(session, actor_id)

    if not can_decide(Role(actor.role), actor.id, leave):
        raise AuthorizationError("You are not the approver for this leave request")
    if leave.status != LeaveStatus.PENDING.value:
        raise InvalidStateError(NOT_PENDING_MESSAGE)

    if action == DecisionAction.APPROVE:
        await _transition(session, leave, actor.id, LeaveStatus.APPROVED, TimelineAction.APPROVED, comment)
    else:
        await _transition(session, leave, actor.id, LeaveStatus.REJECTED, TimelineAction.REJECTED, comment)

    await _best_effort(
        session, "Employee notification", leave_id, _notify_employee(session, leave_id, actor_id, comment, integrations)
    )
    return await _load_response(session, leave_id)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_leave(
    session: AsyncSession,
    employee_id: uuid.UUID,
    payload: CreateLeavePayload,
    integrations: LeaveIntegrations,
    today: date | None = None,
) -> LeaveResponse:
    """Create a PENDING leave request bound to the employee's current manager.

    Flow:
    1. Validate dates and reason
    2. Resolve the employee and their manager
    3. Insert the request and its CREATED event, commit
    4. Best effort: classify, recommend, store both
    5. Best effort: email the manager with signed decision links
    """
    today = today or date.today()
    settings = integrations.settings

    if payload.start_date < today:
        raise ValidationError("Start date cannot be in the past")
    if payload.start_date > payload.end_date:
        raise ValidationError("End date must not be before start date")
    if len(payload.reason.strip()) < settings.reason_min_length:
        raise ValidationError(f"Reason must be at least {settings.reason_min_length} characters")

    employee = await session.get(User, employee_id)
    if employee is None or not employee.is_active:
        raise NotFoundError("Employee not found")
    if employee.manager_id is None:
        raise PreconditionError("Employee has no assigned manager")
    manager = await session.get(User, employee.manager_id)
    if manager is None or not manager.is_active:
        raise PreconditionError("Assigned manager is not an active user")

    leave = LeaveRequest(
        employee_id=employee.id,
        manager_id=manager.id,
        type=payload.type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason.strip(),
        status=LeaveStatus.PENDING.value,
    )
    session.add(leave)
    await session.flush()
    session.add(
        LeaveTimelineEvent(
            leave_id=leave.id,
            seq=0,
            action=TimelineAction.CREATED.value,
            actor_id=employee.id,
        )
    )
    await session.commit()
    leave_id = leave.id
    logger.info("Leave %s created by %s, bound to manager %s", leave_id, employee.id, manager.id)

    await _best_effort(session, "Leave analysis", leave_id, _annotate(session, leave_id, integrations))
    await _best_effort(session, "Manager notification", leave_id, _notify_manager(session, leave_id, integrations))
    return await _load_response(session, leave_id)


async def approve_leave(
    session: AsyncSession,
    leave_id: uuid.UUID,
    actor_id: uuid.UUID,
    integrations: LeaveIntegrations,
    comment: str | None = None,
) -> LeaveResponse:
    """Approve a PENDING request. Raises AuthorizationError before InvalidStateError."""
    return await _decide(session, leave_id, actor_id, DecisionAction.APPROVE, comment, integrations)


async def reject_leave(
    session: AsyncSession,
    leave_id: uuid.UUID,
    actor_id: uuid.UUID,
    integrations: LeaveIntegrations,
    comment: str | None = None,
) -> LeaveResponse:
    """Reject a PENDING request."""
    return await _decide(session, leave_id, actor_id, DecisionAction.REJECT, comment, integrations)


async def decide_via_link(
    session: AsyncSession,
    leave_id: uuid.UUID,
    actor_id: uuid.UUID,
    action: DecisionAction,
    token: str,
    integrations: LeaveIntegrations,
) -> LeaveResponse:
    """Apply a decision from an emailed link, authorised by a decision token instead of a session."""
    claims = integrations.tokens.verify_decision(token)
    check_decision_binding(claims, leave_id, actor_id, action)
    comment = "Approved via email link" if action == DecisionAction.APPROVE else "Rejected via email link"
    return await _decide(session, leave_id, actor_id, action, comment, integrations)


async def cancel_leave(
    session: AsyncSession,
    leave_id: uuid.UUID,
    employee_id: uuid.UUID,
) -> LeaveResponse:
    """Withdraw a PENDING request. Only its owner may cancel; nobody is notified."""
    leave = await _get_leave_or_404(session, leave_id)
    if not can_cancel(employee_id, leave):
        raise AuthorizationError("Only the employee who created this request can cancel it")
    if leave.status != LeaveStatus.PENDING.value:
        raise InvalidStateError(NOT_PENDING_MESSAGE)

    await _transition(session, leave, employee_id, LeaveStatus.CANCELLED, TimelineAction.CANCELLED, None)
    return await _load_response(session, leave.id)


async def get_leave(session: AsyncSession, leave_id: uuid.UUID, auth: AuthContext) -> LeaveResponse:
    leave = await _get_leave_or_404(session, leave_id)
    if not can_view(auth.role, auth.user_id, leave):
        raise AuthorizationError("Not authorized to view this leave request")
    return (await _build_leave_responses(session, [leave]))[0]


async def list_visible(
    session: AsyncSession,
    actor_id: uuid.UUID,
    role: Role,
    status_filter: LeaveStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveListResponse:
    """List the requests an actor may see, newest first."""
    filters = []
    if role == Role.EMPLOYEE:
        filters.append(col(LeaveRequest.employee_id) == actor_id)
    elif role == Role.MANAGER:
        filters.append(col(LeaveRequest.manager_id) == actor_id)
    if status_filter is not None:
        filters.append(col(LeaveRequest.status) == status_filter.value)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.created_at).desc(), col(LeaveRequest.id))
        .offset(offset)
        .limit(limit)
    )
    leaves = list(result.scalars().all())
    return LeaveListResponse(items=await _build_leave_responses(session, leaves), total=total)
