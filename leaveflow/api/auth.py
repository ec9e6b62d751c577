from __future__ import annotations

from fastapi import APIRouter, status

from leaveflow.api.deps import AdminDep, AuthDep, SettingsDep, TokensDep
from leaveflow.db import SessionDep
from leaveflow.schemas.auth import LoginPayload, LoginResponse, RegisterPayload, UserResponse
from leaveflow.services import auth as auth_service

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterPayload, session: SessionDep, _admin: AdminDep) -> UserResponse:
    """Create an account. Only admins may add users."""
    return await auth_service.register(session, payload)


@auth_router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginPayload,
    session: SessionDep,
    tokens: TokensDep,
    settings: SettingsDep,
) -> LoginResponse:
    """Exchange credentials for a bearer session token."""
    return await auth_service.login(session, payload, tokens, settings)


@auth_router.get("/me", response_model=UserResponse)
async def me(session: SessionDep, auth: AuthDep) -> UserResponse:
    """Return the current user's profile."""
    return await auth_service.get_profile(session, auth.user_id)
