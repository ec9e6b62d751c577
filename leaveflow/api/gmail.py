# ruff: noqa: B008
from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse

from leaveflow.api.deps import AdminDep, ApproverDep, IntegrationsDep, NotifierDep, SettingsDep, TokensDep
from leaveflow.db import SessionDep
from leaveflow.exceptions import AuthorizationError, PreconditionError
from leaveflow.models.enums import Role
from leaveflow.models.user import User
from leaveflow.schemas.mail import AuthUrlResponse, PollPayload, PollResult, SendEmailPayload, SentMessage
from leaveflow.services.inbound import InboundDecisionProcessor
from leaveflow.services.mail_templates import decision_page
from leaveflow.services.notifier import GmailNotifier

gmail_router = APIRouter(prefix="/gmail", tags=["gmail"])


def _require_gmail(notifier: object) -> GmailNotifier:
    if not isinstance(notifier, GmailNotifier):
        raise PreconditionError("Gmail OAuth is only available with the Gmail notifier")
    return notifier


@gmail_router.get("/auth-url", response_model=AuthUrlResponse)
async def get_auth_url(
    notifier: NotifierDep,
    tokens: TokensDep,
    settings: SettingsDep,
    admin: AdminDep,
) -> AuthUrlResponse:
    """Consent URL for connecting the service mailbox, carrying a signed state."""
    gmail = _require_gmail(notifier)
    state = tokens.issue_oauth_state(admin.user_id, timedelta(minutes=settings.oauth_state_ttl_minutes))
    return AuthUrlResponse(auth_url=gmail.auth_url(state))


@gmail_router.get("/oauth/callback", response_class=HTMLResponse)
async def oauth_callback(
    session: SessionDep,
    notifier: NotifierDep,
    tokens: TokensDep,
    code: str = Query(min_length=1),
    state: str = Query(min_length=1),
) -> HTMLResponse:
    """OAuth redirect target; stores tokens for the service mailbox.

    Only codes whose ``state`` was issued by ``/gmail/auth-url`` to a
    still-active admin are accepted.
    """
    admin_id = tokens.verify_oauth_state(state)
    admin = await session.get(User, admin_id)
    if admin is None or not admin.is_active or admin.role != Role.ADMIN.value:
        raise AuthorizationError("Only an active admin can connect the service mailbox")

    await _require_gmail(notifier).exchange_code(code, connected_by=admin.id)
    return HTMLResponse(decision_page("Gmail connected", "The service mailbox is connected. You can close this window."))


@gmail_router.post("/send", response_model=SentMessage)
async def send_email(payload: SendEmailPayload, notifier: NotifierDep, _auth: ApproverDep) -> SentMessage:
    return await notifier.send(str(payload.to), payload.subject, payload.html, thread_id=payload.thread_id)


@gmail_router.post("/poll", response_model=PollResult)
async def poll_mailbox(
    session: SessionDep,
    integrations: IntegrationsDep,
    settings: SettingsDep,
    _auth: ApproverDep,
    payload: PollPayload | None = None,
) -> PollResult:
    """Scan the service mailbox for manager replies and apply confident decisions."""
    payload = payload or PollPayload()
    processor = InboundDecisionProcessor(session, integrations)
    return await processor.poll(settings.service_mailbox, payload.query or settings.email_poll_query, payload.max)
