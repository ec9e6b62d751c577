# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase


class User(UUIDBase, TimestampMixin, table=True):
    """A person who can request or decide leave.

    Users are never hard-deleted; ``is_active`` switches them off.
    """

    __tablename__ = "app_user"

    email: str = Field(max_length=255, sa_column_kwargs={"unique": True})
    name: str = Field(max_length=255)
    role: str = Field(max_length=20, index=True)
    manager_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True, index=True),
    )
    password_hash: str = Field(max_length=255)
    is_active: bool = Field(default=True, sa_column_kwargs={"server_default": sa.true()})
