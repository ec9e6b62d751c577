# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from fastapi import APIRouter, Query, status
from fastapi.responses import HTMLResponse

from leaveflow.api.deps import ApproverDep, AuthDep, EmployeeDep, IntegrationsDep
from leaveflow.db import SessionDep
from leaveflow.exceptions import AppError
from leaveflow.models.enums import DecisionAction, LeaveStatus
from leaveflow.schemas.leave import CreateLeavePayload, DecisionPayload, LeaveListResponse, LeaveResponse
from leaveflow.services import leave as leave_service
from leaveflow.services.mail_templates import decision_page

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.services.leave import LeaveIntegrations

leaves_router = APIRouter(prefix="/leaves", tags=["leaves"])


@leaves_router.post("", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
async def create_leave(
    payload: CreateLeavePayload,
    session: SessionDep,
    auth: EmployeeDep,
    integrations: IntegrationsDep,
) -> LeaveResponse:
    """Submit a leave request for approval by the employee's manager."""
    return await leave_service.create_leave(session, auth.user_id, payload, integrations)


@leaves_router.get("/mine", response_model=LeaveListResponse)
async def list_leaves(
    session: SessionDep,
    auth: AuthDep,
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveListResponse:
    """List the requests visible to the caller: own, team, or all for admins."""
    return await leave_service.list_visible(session, auth.user_id, auth.role, status_filter, offset, limit)


@leaves_router.get("/{leave_id}", response_model=LeaveResponse)
async def get_leave(leave_id: uuid.UUID, session: SessionDep, auth: AuthDep) -> LeaveResponse:
    return await leave_service.get_leave(session, leave_id, auth)


@leaves_router.post("/{leave_id}/approve", response_model=LeaveResponse)
async def approve_leave(
    leave_id: uuid.UUID,
    session: SessionDep,
    auth: ApproverDep,
    integrations: IntegrationsDep,
    payload: DecisionPayload | None = None,
) -> LeaveResponse:
    """Approve a pending request (bound manager or admin)."""
    comment = payload.comment if payload else None
    return await leave_service.approve_leave(session, leave_id, auth.user_id, integrations, comment)


@leaves_router.post("/{leave_id}/reject", response_model=LeaveResponse)
async def reject_leave(
    leave_id: uuid.UUID,
    session: SessionDep,
    auth: ApproverDep,
    integrations: IntegrationsDep,
    payload: DecisionPayload | None = None,
) -> LeaveResponse:
    """Reject a pending request (bound manager or admin)."""
    comment = payload.comment if payload else None
    return await leave_service.reject_leave(session, leave_id, auth.user_id, integrations, comment)


@leaves_router.post("/{leave_id}/cancel", response_model=LeaveResponse)
async def cancel_leave(leave_id: uuid.UUID, session: SessionDep, auth: EmployeeDep) -> LeaveResponse:
    """Withdraw one of your own pending requests."""
    return await leave_service.cancel_leave(session, leave_id, auth.user_id)


# ---------------------------------------------------------------------------
# Emailed decision links (no session; authorised by the signed token)
# ---------------------------------------------------------------------------


async def _decide_from_link(
    session: AsyncSession,
    leave_id: uuid.UUID,
    actor: uuid.UUID,
    token: str,
    action: DecisionAction,
    integrations: LeaveIntegrations,
) -> HTMLResponse:
    try:
        leave = await leave_service.decide_via_link(session, leave_id, actor, action, token, integrations)
    except AppError as exc:
        return HTMLResponse(decision_page("Unable to process decision", exc.message), status_code=exc.status_code)
    return HTMLResponse(
        decision_page(
            f"Leave request {leave.status.value.lower()}",
            f"The {leave.type.value.lower()} leave for {leave.employee.name} "
            f"({leave.start_date} to {leave.end_date}) is now {leave.status.value}.",
        )
    )


@leaves_router.get("/{leave_id}/approve", response_class=HTMLResponse)
async def approve_from_link(
    leave_id: uuid.UUID,
    session: SessionDep,
    integrations: IntegrationsDep,
    actor: uuid.UUID = Query(),
    token: str = Query(min_length=1),
) -> HTMLResponse:
    return await _decide_from_link(session, leave_id, actor, token, DecisionAction.APPROVE, integrations)


@leaves_router.get("/{leave_id}/reject", response_class=HTMLResponse)
async def reject_from_link(
    leave_id: uuid.UUID,
    session: SessionDep,
    integrations: IntegrationsDep,
    actor: uuid.UUID = Query(),
    token: str = Query(min_length=1),
) -> HTMLResponse:
    return await _decide_from_link(session, leave_id, actor, token, DecisionAction.REJECT, integrations)
