# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leaveflow.exceptions import AuthenticationError, ConflictError, NotFoundError, PreconditionError, ValidationError
from leaveflow.models.enums import Role
from leaveflow.models.user import User
from leaveflow.schemas.auth import LoginResponse, RegisterPayload, UserListResponse, UserResponse
from leaveflow.services.passwords import hash_password, verify_password

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.config import Settings
    from leaveflow.schemas.auth import LoginPayload
    from leaveflow.services.tokens import TokenService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=Role(user.role),
        manager_id=user.manager_id,
        is_active=user.is_active,
        created_at=user.created_at,
    )


async def _get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _require_active_manager(session: AsyncSession, manager_id: uuid.UUID) -> User:
    manager = await session.get(User, manager_id)
    if manager is None or not manager.is_active or manager.role != Role.MANAGER.value:
        raise PreconditionError("Assigned manager must be an active MANAGER")
    return manager


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def register(session: AsyncSession, payload: RegisterPayload) -> UserResponse:
    """Create an account. Employees may name their approving manager up front."""
    email = payload.email.lower()
    existing = await session.execute(select(User).where(col(User.email) == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email is already registered")

    if payload.manager_id is not None:
        await _require_active_manager(session, payload.manager_id)

    user = User(
        email=email,
        name=payload.name.strip(),
        role=payload.role.value,
        manager_id=payload.manager_id,
        password_hash=hash_password(payload.password),
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Email is already registered") from None
    await session.refresh(user)
    logger.info("Registered %s user %s", user.role, user.id)
    return _build_user_response(user)


async def create_admin(session: AsyncSession, email: str, name: str, password: str) -> UserResponse:
    """Create an ADMIN directly in the database.

    Registration over HTTP needs an admin session, so the first admin of a
    fresh deployment is created here (see ``leaveflow.seed``).
    """
    payload = RegisterPayload(email=email, password=password, name=name, role=Role.ADMIN)
    return await register(session, payload)


async def login(
    session: AsyncSession,
    payload: LoginPayload,
    tokens: TokenService,
    settings: Settings,
) -> LoginResponse:
    """Verify credentials and issue a session token."""
    result = await session.execute(select(User).where(col(User.email) == payload.email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    ttl_minutes = settings.session_token_ttl_minutes
    token = tokens.issue_session(user.id, Role(user.role), user.email, user.name, timedelta(minutes=ttl_minutes))
    return LoginResponse(access_token=token, expires_in=ttl_minutes * 60, user=_build_user_response(user))


async def get_profile(session: AsyncSession, user_id: uuid.UUID) -> UserResponse:
    return _build_user_response(await _get_user_or_404(session, user_id))


async def assign_manager(session: AsyncSession, user_id: uuid.UUID, manager_id: uuid.UUID) -> UserResponse:
    """Point an employee at a new approving manager.

    Requests already created keep the manager they were bound to.
    """
    user = await _get_user_or_404(session, user_id)
    if user.role != Role.EMPLOYEE.value:
        raise ValidationError("Only employees can be assigned a manager")
    if manager_id == user.id:
        raise ValidationError("A user cannot manage themselves")
    await _require_active_manager(session, manager_id)

    user.manager_id = manager_id
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info("Employee %s reassigned to manager %s", user.id, manager_id)
    return _build_user_response(user)


async def deactivate(session: AsyncSession, user_id: uuid.UUID) -> UserResponse:
    """Switch a user off. Users are never hard-deleted."""
    user = await _get_user_or_404(session, user_id)
    user.is_active = False
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info("Deactivated user %s", user.id)
    return _build_user_response(user)


async def list_managers(session: AsyncSession) -> UserListResponse:
    filters = [col(User.role) == Role.MANAGER.value, col(User.is_active).is_(True)]
    count_result = await session.execute(select(func.count()).select_from(User).where(*filters))
    result = await session.execute(select(User).where(*filters).order_by(col(User.name)))
    return UserListResponse(
        items=[_build_user_response(u) for u in result.scalars().all()],
        total=count_result.scalar_one(),
    )
