"""Tests for the leave lifecycle: create, approve, reject, cancel, manager
binding, terminal-state guards, concurrent decisions and side-effect isolation.
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

import httpx
import pytest
from sqlalchemy import func, select
from sqlmodel import col

from leaveflow.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    PreconditionError,
    TokenError,
    ValidationError,
)
from leaveflow.models.enums import DecisionAction, LeaveStatus, LeaveType, Role, TimelineAction
from leaveflow.models.leave import LeaveRequest
from leaveflow.models.timeline import LeaveTimelineEvent
from leaveflow.schemas.auth import AuthContext
from leaveflow.schemas.leave import CreateLeavePayload
from leaveflow.services import auth as auth_service
from leaveflow.services import leave as leave_service
from leaveflow.services.leave import LeaveIntegrations
from leaveflow.services.mail_templates import leave_marker
from leaveflow.services.notifier import InMemoryNotifier

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leaveflow.models.user import User

TODAY = date.today()
REASON = "Family wedding out of town, all handover notes are ready."


def _payload(
    start_offset: int = 3,
    length: int = 2,
    reason: str = REASON,
    leave_type: LeaveType = LeaveType.CASUAL,
) -> CreateLeavePayload:
    start = TODAY + timedelta(days=start_offset)
    return CreateLeavePayload(type=leave_type, start_date=start, end_date=start + timedelta(days=length), reason=reason)


@pytest.fixture
async def team(make_user: Callable[..., Awaitable[User]]) -> tuple[User, User, User]:
    """A manager, an employee reporting to them, and an admin."""
    manager = await make_user(Role.MANAGER, name="Maria Manager")
    employee = await make_user(Role.EMPLOYEE, name="Alice Employee", manager=manager)
    admin = await make_user(Role.ADMIN, name="Ada Admin")
    return manager, employee, admin


async def _timeline(session: AsyncSession, leave_id: uuid.UUID) -> list[LeaveTimelineEvent]:
    result = await session.execute(
        select(LeaveTimelineEvent)
        .where(col(LeaveTimelineEvent.leave_id) == leave_id)
        .order_by(col(LeaveTimelineEvent.seq))
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def test_create_binds_current_manager_and_records_created_event(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    leave = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    assert leave.status == LeaveStatus.PENDING
    assert leave.employee.id == employee.id
    assert leave.manager.id == manager.id
    assert leave.manager.name == "Maria Manager"
    assert leave.decided_at is None
    assert [e.action for e in leave.timeline] == [TimelineAction.CREATED]
    assert leave.timeline[0].actor_id == employee.id


async def test_create_stores_fallback_analysis_when_classifier_unconfigured(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    leave = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    assert leave.ai_analysis is not None
    assert leave.ai_analysis["is_fallback"] is True
    assert leave.ai_analysis["reasoning"] == "AI analysis unavailable - classifier not configured"
    assert leave.manager_ai_recommendation is not None
    assert leave.manager_ai_recommendation["is_fallback"] is True


async def test_create_emails_manager_with_decision_links(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
    notifier: InMemoryNotifier,
) -> None:
    manager, employee, _ = team
    leave = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    assert len(notifier.outbox) == 1
    email = notifier.outbox[0]
    assert email.to == manager.email
    assert leave_marker(leave.id) in email.subject
    assert f"/leaves/{leave.id}/approve?" in email.html
    assert f"/leaves/{leave.id}/reject?" in email.html
    assert f"Leave ID: {leave.id}" in email.html
    assert leave.gmail.thread_id == email.thread_id
    assert leave.gmail.request_msg_id == email.id


async def test_create_without_manager_is_precondition_error(
    db_session: AsyncSession,
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    loner = await make_user(Role.EMPLOYEE)
    with pytest.raises(PreconditionError, match="no assigned manager"):
        await leave_service.create_leave(db_session, loner.id, _payload(), integrations)

    count = await db_session.execute(select(func.count()).select_from(LeaveRequest))
    assert count.scalar_one() == 0


async def test_create_with_inactive_manager_is_precondition_error(
    db_session: AsyncSession,
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    manager = await make_user(Role.MANAGER, is_active=False)
    employee = await make_user(Role.EMPLOYEE, manager=manager)
    with pytest.raises(PreconditionError):
        await leave_service.create_leave(db_session, employee.id, _payload(), integrations)


async def test_create_unknown_employee_is_not_found(db_session: AsyncSession, integrations: LeaveIntegrations) -> None:
    with pytest.raises(NotFoundError):
        await leave_service.create_leave(db_session, uuid.uuid4(), _payload(), integrations)


async def test_create_rejects_past_start_date(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    with pytest.raises(ValidationError, match="past"):
        await leave_service.create_leave(db_session, employee.id, _payload(start_offset=-1), integrations)


async def test_create_allows_start_today(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    leave = await leave_service.create_leave(
        db_session, employee.id, _payload(start_offset=0, length=0), integrations, today=TODAY
    )
    assert leave.start_date == leave.end_date == TODAY


async def test_create_rejects_end_before_start(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    start = TODAY + timedelta(days=5)
    payload = CreateLeavePayload(
        type=LeaveType.SICK, start_date=start, end_date=start - timedelta(days=1), reason=REASON
    )
    with pytest.raises(ValidationError, match="End date"):
        await leave_service.create_leave(db_session, employee.id, payload, integrations)


async def test_create_rejects_short_reason_after_trimming(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    with pytest.raises(ValidationError, match="at least 10"):
        await leave_service.create_leave(db_session, employee.id, _payload(reason="   short    "), integrations)


async def test_create_succeeds_when_mail_transport_fails(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    integrations.notifier = InMemoryNotifier(fail_sends=True)

    leave = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    assert leave.status == LeaveStatus.PENDING
    assert leave.gmail.thread_id is None
    assert leave.ai_analysis is not None


async def test_create_succeeds_when_classifier_upstream_fails(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
    make_classifier: Callable[..., object],
) -> None:
    _, employee, _ = team
    integrations.classifier = make_classifier(lambda request: httpx.Response(500, json={"error": "boom"}))

    leave = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    assert leave.status == LeaveStatus.PENDING
    assert leave.ai_analysis is not None
    assert leave.ai_analysis["reasoning"] == "AI analysis failed - manual review required"


async def test_reassigning_manager_does_not_rebind_existing_requests(
    db_session: AsyncSession,
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    old_manager = await make_user(Role.MANAGER)
    new_manager = await make_user(Role.MANAGER)
    employee = await make_user(Role.EMPLOYEE, manager=old_manager)

    first = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    await auth_service.assign_manager(db_session, employee.id, new_manager.id)
    second = await leave_service.create_leave(db_session, employee.id, _payload(start_offset=20), integrations)

    assert first.manager.id == old_manager.id
    assert second.manager.id == new_manager.id

    with pytest.raises(AuthorizationError):
        await leave_service.approve_leave(db_session, first.id, new_manager.id, integrations)
    approved = await leave_service.approve_leave(db_session, first.id, old_manager.id, integrations)
    assert approved.status == LeaveStatus.APPROVED


# ---------------------------------------------------------------------------
# Approve / reject
# ---------------------------------------------------------------------------


async def test_manager_approves_with_comment(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
    notifier: InMemoryNotifier,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    approved = await leave_service.approve_leave(db_session, created.id, manager.id, integrations, "Enjoy")

    assert approved.status == LeaveStatus.APPROVED
    assert approved.decided_at is not None
    assert [e.action for e in approved.timeline] == [TimelineAction.CREATED, TimelineAction.APPROVED]
    assert approved.timeline[1].actor_id == manager.id
    assert approved.timeline[1].comment == "Enjoy"

    # Decision email goes to the employee on the original thread.
    assert len(notifier.outbox) == 2
    decision_email = notifier.outbox[1]
    assert decision_email.to == employee.email
    assert "approved" in decision_email.subject
    assert decision_email.thread_id == created.gmail.thread_id
    assert approved.gmail.decision_msg_id == decision_email.id


async def test_manager_rejects(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
    notifier: InMemoryNotifier,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    rejected = await leave_service.reject_leave(db_session, created.id, manager.id, integrations, "Release week")

    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.decided_at is not None
    assert rejected.timeline[-1].action == TimelineAction.REJECTED
    assert rejected.timeline[-1].comment == "Release week"
    assert "rejected" in notifier.outbox[-1].subject


async def test_other_manager_cannot_decide(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    stranger = await make_user(Role.MANAGER)
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    with pytest.raises(AuthorizationError, match="not the approver"):
        await leave_service.approve_leave(db_session, created.id, stranger.id, integrations)
    with pytest.raises(AuthorizationError):
        await leave_service.reject_leave(db_session, created.id, stranger.id, integrations)

    unchanged = await leave_service.get_leave(
        db_session, created.id, AuthContext(user_id=employee.id, role=Role.EMPLOYEE, email="", name="")
    )
    assert unchanged.status == LeaveStatus.PENDING
    assert len(unchanged.timeline) == 1


async def test_employee_cannot_decide_own_request(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    with pytest.raises(AuthorizationError):
        await leave_service.approve_leave(db_session, created.id, employee.id, integrations)


async def test_admin_can_decide_any_request(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    _, employee, admin = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    rejected = await leave_service.reject_leave(db_session, created.id, admin.id, integrations)

    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.timeline[-1].actor_id == admin.id


async def test_deactivated_manager_cannot_decide(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    await auth_service.deactivate(db_session, manager.id)

    with pytest.raises(AuthorizationError, match="not an active user"):
        await leave_service.approve_leave(db_session, created.id, manager.id, integrations)


async def test_decide_unknown_leave_is_not_found(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, _, _ = team
    with pytest.raises(NotFoundError):
        await leave_service.approve_leave(db_session, uuid.uuid4(), manager.id, integrations)


async def test_decision_succeeds_when_employee_email_fails(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    integrations.notifier = InMemoryNotifier(fail_sends=True)

    approved = await leave_service.approve_leave(db_session, created.id, manager.id, integrations)

    assert approved.status == LeaveStatus.APPROVED
    assert approved.gmail.decision_msg_id is None


# ---------------------------------------------------------------------------
# Terminal states
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("first", "second"),
    [
        (DecisionAction.APPROVE, DecisionAction.APPROVE),
        (DecisionAction.APPROVE, DecisionAction.REJECT),
        (DecisionAction.REJECT, DecisionAction.APPROVE),
    ],
)
async def test_decided_request_cannot_be_decided_again(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
    first: DecisionAction,
    second: DecisionAction,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    decide = {DecisionAction.APPROVE: leave_service.approve_leave, DecisionAction.REJECT: leave_service.reject_leave}

    await decide[first](db_session, created.id, manager.id, integrations)
    with pytest.raises(InvalidStateError, match="not pending"):
        await decide[second](db_session, created.id, manager.id, integrations)

    events = await _timeline(db_session, created.id)
    assert len(events) == 2


async def test_cancelled_request_cannot_be_approved(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    await leave_service.cancel_leave(db_session, created.id, employee.id)

    with pytest.raises(InvalidStateError):
        await leave_service.approve_leave(db_session, created.id, manager.id, integrations)


async def test_authorization_is_checked_before_state(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    stranger = await make_user(Role.MANAGER)
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    await leave_service.approve_leave(db_session, created.id, manager.id, integrations)

    with pytest.raises(AuthorizationError):
        await leave_service.reject_leave(db_session, created.id, stranger.id, integrations)


async def test_concurrent_decisions_only_one_wins(
    session_factory: async_sessionmaker[AsyncSession],
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    """A decision based on a stale read must not overwrite a committed one."""
    manager, employee, _ = team
    async with session_factory() as setup_session:
        created = await leave_service.create_leave(setup_session, employee.id, _payload(), integrations)

    async with session_factory() as session_a, session_factory() as session_b:
        stale = await session_b.get(LeaveRequest, created.id)
        assert stale is not None
        assert stale.status == LeaveStatus.PENDING.value

        await leave_service.approve_leave(session_a, created.id, manager.id, integrations)

        # session_b still holds the PENDING copy, so only the conditional write can stop it.
        with pytest.raises(InvalidStateError):
            await leave_service.reject_leave(session_b, created.id, manager.id, integrations)

    async with session_factory() as check:
        leave = await check.get(LeaveRequest, created.id)
        assert leave is not None
        assert leave.status == LeaveStatus.APPROVED.value
        events = await _timeline(check, created.id)
        assert [e.action for e in events] == [TimelineAction.CREATED.value, TimelineAction.APPROVED.value]


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------


async def test_employee_cancels_own_pending_request_without_notification(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
    notifier: InMemoryNotifier,
) -> None:
    _, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    sent_before = len(notifier.outbox)

    cancelled = await leave_service.cancel_leave(db_session, created.id, employee.id)

    assert cancelled.status == LeaveStatus.CANCELLED
    assert cancelled.decided_at is None
    assert cancelled.timeline[-1].action == TimelineAction.CANCELLED
    assert cancelled.timeline[-1].actor_id == employee.id
    assert len(notifier.outbox) == sent_before


async def test_only_owner_can_cancel(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    colleague = await make_user(Role.EMPLOYEE, manager=manager)
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    with pytest.raises(AuthorizationError, match="Only the employee"):
        await leave_service.cancel_leave(db_session, created.id, colleague.id)
    with pytest.raises(AuthorizationError):
        await leave_service.cancel_leave(db_session, created.id, manager.id)


async def test_cannot_cancel_decided_request(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    await leave_service.approve_leave(db_session, created.id, manager.id, integrations)

    with pytest.raises(InvalidStateError):
        await leave_service.cancel_leave(db_session, created.id, employee.id)


# ---------------------------------------------------------------------------
# Decision links
# ---------------------------------------------------------------------------


async def test_decide_via_link_applies_bound_action(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    token = integrations.tokens.issue_decision(created.id, manager.id, DecisionAction.REJECT, timedelta(hours=1))

    rejected = await leave_service.decide_via_link(
        db_session, created.id, manager.id, DecisionAction.REJECT, token, integrations
    )

    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.timeline[-1].comment == "Rejected via email link"


async def test_decide_via_link_rejects_token_for_other_action(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    token = integrations.tokens.issue_decision(created.id, manager.id, DecisionAction.REJECT, timedelta(hours=1))

    with pytest.raises(AuthorizationError, match="does not permit"):
        await leave_service.decide_via_link(
            db_session, created.id, manager.id, DecisionAction.APPROVE, token, integrations
        )


async def test_decide_via_link_rejects_token_for_other_leave(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    first = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    second = await leave_service.create_leave(db_session, employee.id, _payload(start_offset=10), integrations)
    token = integrations.tokens.issue_decision(first.id, manager.id, DecisionAction.APPROVE, timedelta(hours=1))

    with pytest.raises(AuthorizationError, match="different leave"):
        await leave_service.decide_via_link(
            db_session, second.id, manager.id, DecisionAction.APPROVE, token, integrations
        )


async def test_decide_via_link_rejects_expired_token(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    token = integrations.tokens.issue_decision(created.id, manager.id, DecisionAction.APPROVE, timedelta(minutes=-5))

    with pytest.raises(TokenError, match="expired"):
        await leave_service.decide_via_link(
            db_session, created.id, manager.id, DecisionAction.APPROVE, token, integrations
        )


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


async def test_list_visible_scopes_by_role(
    db_session: AsyncSession,
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    manager_a = await make_user(Role.MANAGER)
    manager_b = await make_user(Role.MANAGER)
    admin = await make_user(Role.ADMIN)
    alice = await make_user(Role.EMPLOYEE, manager=manager_a)
    bob = await make_user(Role.EMPLOYEE, manager=manager_b)

    await leave_service.create_leave(db_session, alice.id, _payload(), integrations)
    await leave_service.create_leave(db_session, alice.id, _payload(start_offset=10), integrations)
    bob_leave = await leave_service.create_leave(db_session, bob.id, _payload(), integrations)

    alice_view = await leave_service.list_visible(db_session, alice.id, Role.EMPLOYEE)
    assert alice_view.total == 2
    assert {item.employee.id for item in alice_view.items} == {alice.id}

    manager_b_view = await leave_service.list_visible(db_session, manager_b.id, Role.MANAGER)
    assert [item.id for item in manager_b_view.items] == [bob_leave.id]

    admin_view = await leave_service.list_visible(db_session, admin.id, Role.ADMIN)
    assert admin_view.total == 3


async def test_list_visible_filters_by_status_and_paginates(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, _ = team
    first = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)
    await leave_service.create_leave(db_session, employee.id, _payload(start_offset=10), integrations)
    await leave_service.create_leave(db_session, employee.id, _payload(start_offset=20), integrations)
    await leave_service.approve_leave(db_session, first.id, manager.id, integrations)

    pending = await leave_service.list_visible(db_session, manager.id, Role.MANAGER, LeaveStatus.PENDING)
    assert pending.total == 2
    assert all(item.status == LeaveStatus.PENDING for item in pending.items)

    page = await leave_service.list_visible(db_session, manager.id, Role.MANAGER, offset=1, limit=1)
    assert page.total == 3
    assert len(page.items) == 1


async def test_get_leave_hidden_from_unrelated_users(
    db_session: AsyncSession,
    team: tuple[User, User, User],
    make_user: Callable[..., Awaitable[User]],
    integrations: LeaveIntegrations,
) -> None:
    manager, employee, admin = team
    outsider = await make_user(Role.EMPLOYEE)
    other_manager = await make_user(Role.MANAGER)
    created = await leave_service.create_leave(db_session, employee.id, _payload(), integrations)

    for user, role in ((employee, Role.EMPLOYEE), (manager, Role.MANAGER), (admin, Role.ADMIN)):
        auth = AuthContext(user_id=user.id, role=role, email=user.email, name=user.name)
        assert (await leave_service.get_leave(db_session, created.id, auth)).id == created.id

    for user, role in ((outsider, Role.EMPLOYEE), (other_manager, Role.MANAGER)):
        auth = AuthContext(user_id=user.id, role=role, email=user.email, name=user.name)
        with pytest.raises(AuthorizationError):
            await leave_service.get_leave(db_session, created.id, auth)
