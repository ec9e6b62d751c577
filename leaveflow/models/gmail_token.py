# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import UUIDBase


def _now_utc() -> datetime:
    return datetime.now(UTC)


class GmailToken(UUIDBase, table=True):
    """OAuth credentials for the service mailbox."""

    __tablename__ = "gmail_token"

    mailbox: str = Field(max_length=255, sa_column_kwargs={"unique": True})
    connected_by: uuid.UUID | None = None
    access_token: str
    refresh_token: str | None = None
    scope: str | None = None
    expires_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    updated_at: datetime = Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
