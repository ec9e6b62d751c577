from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leaveflow.api.deps import get_classifier, get_notifier
from leaveflow.config import Settings
from leaveflow.db import get_session
from leaveflow.main import create_app
from leaveflow.models import SQLModel
from leaveflow.models.enums import Role
from leaveflow.models.user import User
from leaveflow.services.classifier import ClassifierGateway
from leaveflow.services.leave import LeaveIntegrations
from leaveflow.services.notifier import InMemoryNotifier
from leaveflow.services.passwords import hash_password
from leaveflow.services.tokens import TokenService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

PASSWORD = "password123"
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        mail_backend="memory",
        deepseek_api_key=None,
        gmail_client_id=None,
        gmail_client_secret=None,
    )


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """A fresh SQLite database per test.

    Services commit their own transactions, so each test gets its own file
    instead of a rolled-back outer transaction.
    """
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'leaveflow.db'}")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def tokens(settings: Settings) -> TokenService:
    return TokenService(settings.jwt_secret, settings.jwt_issuer, settings.jwt_audience, settings.jwt_algorithm)


@pytest.fixture
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture
async def classifier(settings: Settings) -> AsyncIterator[ClassifierGateway]:
    """Unconfigured gateway: every call takes the fallback path."""
    gateway = ClassifierGateway(settings)
    yield gateway
    await gateway.aclose()


@pytest.fixture
def make_classifier(settings: Settings) -> Callable[[Callable[[httpx.Request], httpx.Response]], ClassifierGateway]:
    """Build a configured gateway whose HTTP calls are answered by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ClassifierGateway:
        configured = settings.model_copy(update={"deepseek_api_key": "test-key"})
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://llm.test")
        return ClassifierGateway(configured, client=client)

    return _make


@pytest.fixture
def integrations(
    classifier: ClassifierGateway,
    notifier: InMemoryNotifier,
    tokens: TokenService,
    settings: Settings,
) -> LeaveIntegrations:
    return LeaveIntegrations(classifier=classifier, notifier=notifier, tokens=tokens, settings=settings)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Insert a user directly, bypassing registration."""

    async def _make(
        role: Role = Role.EMPLOYEE,
        *,
        name: str | None = None,
        manager: User | None = None,
        is_active: bool = True,
    ) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=f"{role.value.lower()}-{suffix}@example.com",
            name=name or f"{role.value.title()} {suffix}",
            role=role.value,
            manager_id=manager.id if manager is not None else None,
            password_hash=_PASSWORD_HASH,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers(tokens: TokenService) -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        token = tokens.issue_session(user.id, Role(user.role), user.email, user.name, timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    classifier: ClassifierGateway,
    notifier: InMemoryNotifier,
    tokens: TokenService,
) -> FastAPI:
    application = create_app(settings)
    application.state.tokens = tokens

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = _override_get_session
    application.dependency_overrides[get_classifier] = lambda: classifier
    application.dependency_overrides[get_notifier] = lambda: notifier
    return application


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the app with test collaborators injected."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
