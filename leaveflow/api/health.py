import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leaveflow.api.deps import ClassifierDep, NotifierDep, SettingsDep
from leaveflow.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class IntegrationStatus(BaseModel):
    classifier: bool
    notifier: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok", "degraded", "error"]
    version: str
    environment: str
    integrations: IntegrationStatus


@router.get("/health", response_model=HealthResponse)
async def health(
    session: SessionDep,
    settings: SettingsDep,
    classifier: ClassifierDep,
    notifier: NotifierDep,
) -> HealthResponse:
    """Return the health status of the API service.

    Unconfigured integrations do not degrade the status; the workflow runs
    without them.
    """
    status: Literal["ok", "degraded", "error"] = "ok"

    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database connectivity failed")
        status = "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        environment=settings.environment,
        integrations=IntegrationStatus(classifier=classifier.configured, notifier=notifier.configured),
    )
