# ruff: noqa: TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from leaveflow.api.deps import AdminDep
from leaveflow.db import SessionDep
from leaveflow.schemas.auth import AssignManagerPayload, UserListResponse, UserResponse
from leaveflow.services import auth as auth_service

users_router = APIRouter(prefix="/users", tags=["users"])


@users_router.get("/managers", response_model=UserListResponse)
async def list_managers(session: SessionDep) -> UserListResponse:
    """List active managers. Public, so the registration form can offer them."""
    return await auth_service.list_managers(session)


@users_router.put("/{user_id}/manager", response_model=UserResponse)
async def assign_manager(
    user_id: uuid.UUID,
    payload: AssignManagerPayload,
    session: SessionDep,
    _admin: AdminDep,
) -> UserResponse:
    """Reassign an employee's manager. Existing requests keep their approver."""
    return await auth_service.assign_manager(session, user_id, payload.manager_id)


@users_router.post("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(user_id: uuid.UUID, session: SessionDep, _admin: AdminDep) -> UserResponse:
    return await auth_service.deactivate(session, user_id)
