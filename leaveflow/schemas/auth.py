# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, EmailStr, Field, model_validator

from leaveflow.models.enums import Role


class AuthContext(BaseModel):
    """Authenticated actor resolved from a session token."""

    user_id: uuid.UUID
    role: Role
    email: str
    name: str


class RegisterPayload(BaseModel):
    """Request body for creating an account."""

    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=2, max_length=255)
    role: Role
    manager_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def _only_employees_have_managers(self) -> Self:
        if self.manager_id is not None and self.role != Role.EMPLOYEE:
            msg = "Only employees can be assigned a manager"
            raise ValueError(msg)
        return self


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    """Public view of a user."""

    id: uuid.UUID
    email: str
    name: str
    role: Role
    manager_id: uuid.UUID | None
    is_active: bool
    created_at: datetime


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AssignManagerPayload(BaseModel):
    manager_id: uuid.UUID


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int
