"""Outbound and inbound email for the leave workflow.

``Notifier`` is the seam the lifecycle engine and the inbound processor talk
to. ``GmailNotifier`` is the production implementation over the Gmail REST
API; ``InMemoryNotifier`` records mail for development and tests.
"""

# ruff: noqa: TC003
from __future__ import annotations

import base64
import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlencode

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import col, select

from leaveflow.exceptions import UpstreamUnavailableError
from leaveflow.models.gmail_token import GmailToken
from leaveflow.schemas.mail import InboundMessage, MessageRef, SentMessage

if TYPE_CHECKING:
    from leaveflow.config import Settings

logger = logging.getLogger(__name__)

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SCOPES = (
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.modify",
)

_TAG_RE = re.compile(r"<[^>]+>")


class Notifier(Protocol):
    """Interface for sending and reading workflow email."""

    @property
    def configured(self) -> bool: ...

    async def send(self, to: str, subject: str, html: str, thread_id: str | None = None) -> SentMessage: ...

    async def list_messages(self, mailbox: str, query: str, max_results: int) -> list[MessageRef]: ...

    async def get_message(self, mailbox: str, message_id: str) -> InboundMessage: ...


# ---------------------------------------------------------------------------
# Gmail message parsing
# ---------------------------------------------------------------------------


def _b64url_decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8", errors="replace")


def _find_part(payload: dict[str, Any], mime_type: str) -> str | None:
    if payload.get("mimeType") == mime_type:
        data = (payload.get("body") or {}).get("data")
        if data:
            return _b64url_decode(data)
    for part in payload.get("parts") or []:
        found = _find_part(part, mime_type)
        if found is not None:
            return found
    return None


def parse_gmail_message(data: dict[str, Any]) -> InboundMessage:
    """Reduce a ``format=full`` Gmail message resource to an InboundMessage."""
    payload = data.get("payload") or {}
    headers = {h.get("name", "").lower(): h.get("value", "") for h in payload.get("headers") or []}
    snippet = data.get("snippet") or ""

    body = _find_part(payload, "text/plain")
    if body is None:
        html_body = _find_part(payload, "text/html")
        body = _TAG_RE.sub(" ", html_body).strip() if html_body is not None else snippet

    return InboundMessage(
        id=data["id"],
        thread_id=data.get("threadId"),
        subject=headers.get("subject", ""),
        sender=headers.get("from", ""),
        body=body,
        snippet=snippet,
    )


def build_raw_message(sender: str, to: str, subject: str, html: str) -> str:
    """Build a base64url-encoded RFC 2822 HTML message for the Gmail send API."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content(html, subtype="html")
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


# ---------------------------------------------------------------------------
# Gmail implementation
# ---------------------------------------------------------------------------


class GmailNotifier:
    """Sends and reads mail as the service mailbox through the Gmail REST API."""

    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[], async_sessionmaker[AsyncSession]],
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(settings.gmail_timeout_seconds))

    @property
    def configured(self) -> bool:
        return bool(self._settings.gmail_client_id and self._settings.gmail_client_secret)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _require_configured(self) -> None:
        if not self.configured:
            raise UpstreamUnavailableError("Gmail OAuth is not configured")

    # -- OAuth -----------------------------------------------------------

    def auth_url(self, state: str) -> str:
        """Google consent URL; ``state`` comes back unchanged on the callback."""
        self._require_configured()
        params = {
            "client_id": self._settings.gmail_client_id,
            "redirect_uri": self._settings.gmail_redirect_uri,
            "response_type": "code",
            "scope": " ".join(GMAIL_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def _token_request(self, data: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.post(GOOGLE_TOKEN_URL, data=data)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(f"Google token endpoint failed: {exc}") from exc

    async def exchange_code(self, code: str, connected_by: uuid.UUID | None = None) -> GmailToken:
        """Trade an OAuth authorization code for tokens and store them for the service mailbox."""
        self._require_configured()
        tokens = await self._token_request(
            {
                "code": code,
                "client_id": self._settings.gmail_client_id or "",
                "client_secret": self._settings.gmail_client_secret or "",
                "redirect_uri": self._settings.gmail_redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        mailbox = self._settings.service_mailbox
        async with self._session_factory()() as session:
            result = await session.execute(select(GmailToken).where(col(GmailToken.mailbox) == mailbox))
            record = result.scalar_one_or_none()
            if record is None:
                record = GmailToken(mailbox=mailbox, access_token=tokens["access_token"])
            _apply_tokens(record, tokens)
            record.connected_by = connected_by
            session.add(record)
            await session.commit()
            await session.refresh(record)
        logger.info("Gmail connected for mailbox %s", mailbox)
        return record

    async def _access_token(self) -> str:
        self._require_configured()
        mailbox = self._settings.service_mailbox
        async with self._session_factory()() as session:
            result = await session.execute(select(GmailToken).where(col(GmailToken.mailbox) == mailbox))
            record = result.scalar_one_or_none()
            if record is None:
                raise UpstreamUnavailableError("Gmail is not connected for the service mailbox")

            expires_at = record.expires_at
            if expires_at is not None and expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=UTC)
            if expires_at is None or expires_at > datetime.now(UTC):
                return record.access_token

            if not record.refresh_token:
                raise UpstreamUnavailableError("Gmail token expired and no refresh token is stored")
            tokens = await self._token_request(
                {
                    "refresh_token": record.refresh_token,
                    "client_id": self._settings.gmail_client_id or "",
                    "client_secret": self._settings.gmail_client_secret or "",
                    "grant_type": "refresh_token",
                }
            )
            _apply_tokens(record, tokens)
            session.add(record)
            await session.commit()
            logger.info("Refreshed Gmail access token for %s", mailbox)
            return record.access_token

    async def _api(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        token = await self._access_token()
        try:
            response = await self._client.request(
                method,
                f"{GMAIL_API_BASE}{path}",
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(f"Gmail request failed: {exc}") from exc

    # -- Notifier protocol -----------------------------------------------

    async def send(self, to: str, subject: str, html: str, thread_id: str | None = None) -> SentMessage:
        sender = f"{self._settings.mail_sender_name} <{self._settings.service_mailbox}>"
        body: dict[str, Any] = {"raw": build_raw_message(sender, to, subject, html)}
        if thread_id:
            body["threadId"] = thread_id
        data = await self._api("POST", "/messages/send", json=body)
        logger.info("Email sent: %s", data.get("id"))
        return SentMessage(id=data["id"], thread_id=data.get("threadId"))

    async def list_messages(self, mailbox: str, query: str, max_results: int) -> list[MessageRef]:
        data = await self._api("GET", "/messages", params={"q": query, "maxResults": max_results})
        return [MessageRef(id=m["id"], thread_id=m.get("threadId")) for m in data.get("messages") or []]

    async def get_message(self, mailbox: str, message_id: str) -> InboundMessage:
        data = await self._api("GET", f"/messages/{message_id}", params={"format": "full"})
        return parse_gmail_message(data)


def _apply_tokens(record: GmailToken, tokens: dict[str, Any]) -> None:
    record.access_token = tokens["access_token"]
    if tokens.get("refresh_token"):
        record.refresh_token = tokens["refresh_token"]
    if tokens.get("scope"):
        record.scope = tokens["scope"]
    expires_in = tokens.get("expires_in")
    record.expires_at = datetime.now(UTC) + timedelta(seconds=int(expires_in)) if expires_in else None
    record.updated_at = datetime.now(UTC)


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


@dataclass
class OutboundEmail:
    id: str
    to: str
    subject: str
    html: str
    thread_id: str


class InMemoryNotifier:
    """Records sent mail and serves a seeded inbox.

    Replies sent into an existing thread keep that thread id; new mail
    starts a new thread.
    """

    def __init__(self, *, fail_sends: bool = False) -> None:
        self.fail_sends = fail_sends
        self.outbox: list[OutboundEmail] = []
        self._inbox: dict[str, InboundMessage] = {}

    @property
    def configured(self) -> bool:
        return True

    async def send(self, to: str, subject: str, html: str, thread_id: str | None = None) -> SentMessage:
        if self.fail_sends:
            raise UpstreamUnavailableError("Mail transport unavailable")
        email = OutboundEmail(
            id=uuid.uuid4().hex,
            to=to,
            subject=subject,
            html=html,
            thread_id=thread_id or uuid.uuid4().hex,
        )
        self.outbox.append(email)
        return SentMessage(id=email.id, thread_id=email.thread_id)

    def seed_message(self, subject: str, body: str, sender: str = "", thread_id: str | None = None) -> str:
        """Place a message in the inbox and return its id."""
        message_id = uuid.uuid4().hex
        self._inbox[message_id] = InboundMessage(
            id=message_id,
            thread_id=thread_id,
            subject=subject,
            sender=sender,
            body=body,
            snippet=body[:100],
        )
        return message_id

    async def list_messages(self, mailbox: str, query: str, max_results: int) -> list[MessageRef]:
        messages = list(self._inbox.values())[:max_results]
        return [MessageRef(id=m.id, thread_id=m.thread_id) for m in messages]

    async def get_message(self, mailbox: str, message_id: str) -> InboundMessage:
        try:
            return self._inbox[message_id]
        except KeyError as exc:
            raise UpstreamUnavailableError(f"Message {message_id} not found") from exc

    async def aclose(self) -> None:
        return None
