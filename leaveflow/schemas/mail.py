# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr, Field

from leaveflow.models.enums import EmailDecision, MessageOutcome

# ---------------------------------------------------------------------------
# Notifier contract
# ---------------------------------------------------------------------------


class SentMessage(BaseModel):
    id: str
    thread_id: str | None = None


class MessageRef(BaseModel):
    id: str
    thread_id: str | None = None


class InboundMessage(BaseModel):
    """A fetched mailbox message reduced to what decision extraction needs."""

    id: str
    thread_id: str | None = None
    subject: str = ""
    sender: str = ""
    body: str = ""
    snippet: str = ""


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class SendEmailPayload(BaseModel):
    to: EmailStr
    subject: str = Field(min_length=1, max_length=500)
    html: str = Field(min_length=1)
    thread_id: str | None = None


class PollPayload(BaseModel):
    query: str | None = None
    max: int = Field(default=10, ge=1, le=50)


class AuthUrlResponse(BaseModel):
    auth_url: str


class MessageResult(BaseModel):
    """Outcome of processing one inbound message."""

    message_id: str
    leave_id: uuid.UUID | None = None
    outcome: MessageOutcome
    decision: EmailDecision | None = None
    confidence: int | None = None
    detail: str | None = None


class PollResult(BaseModel):
    messages_checked: int
    decisions_applied: int
    results: list[MessageResult] = Field(default_factory=list)
    error: str | None = None
