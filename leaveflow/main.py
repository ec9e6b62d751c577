from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from leaveflow.api.health import router as health_router
from leaveflow.api.router import api_router
from leaveflow.config import Settings, get_settings
from leaveflow.db import dispose_engine, get_session_factory
from leaveflow.exceptions import setup_exception_handlers
from leaveflow.middleware import setup_middleware
from leaveflow.services.classifier import ClassifierGateway
from leaveflow.services.notifier import GmailNotifier, InMemoryNotifier
from leaveflow.services.tokens import TokenService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = app.state.settings
    logger.info(
        "Starting %s v%s [%s] classifier=%s notifier=%s",
        settings.app_name,
        settings.app_version,
        settings.environment,
        "on" if app.state.classifier.configured else "fallback",
        "on" if app.state.notifier.configured else "off",
    )
    yield
    logger.info("Shutting down %s", settings.app_name)
    await app.state.classifier.aclose()
    await app.state.notifier.aclose()
    await dispose_engine()


def _build_notifier(settings: Settings) -> GmailNotifier | InMemoryNotifier:
    if settings.mail_backend == "memory":
        return InMemoryNotifier()
    return GmailNotifier(settings, get_session_factory)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory.

    The classifier, notifier and token service are built here once and
    shared through ``app.state``.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )
    application.state.settings = settings
    application.state.classifier = ClassifierGateway(settings)
    application.state.notifier = _build_notifier(settings)
    application.state.tokens = TokenService(
        settings.jwt_secret,
        settings.jwt_issuer,
        settings.jwt_audience,
        settings.jwt_algorithm,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
