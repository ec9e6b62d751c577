"""Turn manager email replies into leave decisions.

Replies arrive through the notifier's mailbox. A message only changes a
request when all of these hold:

* it references a leave id (subject marker or ``Leave ID:`` body line);
* the extracted decision is APPROVED or REJECTED;
* the confidence is strictly above the configured threshold;
* the request is still PENDING;
* the message was sent by the request's bound manager.

Anything else is recorded as skipped. The decision is applied as the
request's bound manager through the normal lifecycle operations.
"""

from __future__ import annotations

import logging
import re
from email.utils import parseaddr
from typing import TYPE_CHECKING, Any

from leaveflow.exceptions import AppError
from leaveflow.models.enums import EmailDecision, LeaveStatus, MessageOutcome
from leaveflow.models.leave import LeaveRequest
from leaveflow.models.user import User
from leaveflow.schemas.mail import MessageRef, MessageResult, PollResult
from leaveflow.services.leave import approve_leave, reject_leave
from leaveflow.services.mail_templates import extract_leave_id

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.services.leave import LeaveIntegrations

logger = logging.getLogger(__name__)

APPROVED_COMMENT = "Approved via email reply"
REJECTED_COMMENT = "Rejected via email reply"

_REPLY_HEADER_RE = re.compile(r"^On .+ wrote:\s*$")


def strip_quoted_reply(body: str) -> str:
    """Drop the quoted original from a reply so only the manager's own words remain."""
    kept: list[str] = []
    for line in body.splitlines():
        if _REPLY_HEADER_RE.match(line.strip()):
            break
        if line.lstrip().startswith(">"):
            continue
        kept.append(line)
    return "\n".join(kept).strip()


class InboundDecisionProcessor:
    def __init__(self, session: AsyncSession, integrations: LeaveIntegrations) -> None:
        self._session = session
        self._integrations = integrations
        self._threshold = integrations.settings.email_decision_confidence_threshold

    async def poll(self, mailbox: str, query: str, max_results: int) -> PollResult:
        """Process up to ``max_results`` messages matching ``query``.

        A failure on one message is recorded against it and the batch carries on.
        """
        try:
            refs = await self._integrations.notifier.list_messages(mailbox, query, max_results)
        except AppError as exc:
            logger.warning("Could not list messages for %s: %s", mailbox, exc.message)
            return PollResult(messages_checked=0, decisions_applied=0, error=exc.message)

        results: list[MessageResult] = []
        for ref in refs[:max_results]:
            try:
                result = await self._process(mailbox, ref)
            except AppError as exc:
                logger.warning("Message %s failed: %s", ref.id, exc.message)
                result = MessageResult(message_id=ref.id, outcome=MessageOutcome.ERROR, detail=exc.message)
            except Exception:
                logger.exception("Unexpected error processing message %s", ref.id)
                await self._session.rollback()
                result = MessageResult(
                    message_id=ref.id, outcome=MessageOutcome.ERROR, detail="Unexpected processing error"
                )
            results.append(result)

        applied = sum(1 for r in results if r.outcome == MessageOutcome.APPLIED)
        logger.info("Mail poll checked %d messages, applied %d decisions", len(results), applied)
        return PollResult(messages_checked=len(results), decisions_applied=applied, results=results)

    async def _process(self, mailbox: str, ref: MessageRef) -> MessageResult:
        message = await self._integrations.notifier.get_message(mailbox, ref.id)

        leave_id = extract_leave_id(message.subject) or extract_leave_id(message.body)
        if leave_id is None:
            return _skip({"message_id": ref.id}, "No leave reference found")

        reply = strip_quoted_reply(message.body) or message.snippet
        extracted = await self._integrations.classifier.extract_decision(reply)
        base: dict[str, Any] = {
            "message_id": ref.id,
            "leave_id": leave_id,
            "decision": extracted.decision,
            "confidence": extracted.confidence,
        }

        if extracted.decision not in (EmailDecision.APPROVED, EmailDecision.REJECTED):
            return _skip(base, f"No actionable decision ({extracted.decision.value})")
        if extracted.confidence <= self._threshold:
            return _skip(base, f"Confidence {extracted.confidence} is not above threshold {self._threshold}")

        leave = await self._session.get(LeaveRequest, leave_id, populate_existing=True)
        if leave is None:
            return _skip(base, "Leave request not found")
        if leave.status != LeaveStatus.PENDING.value:
            return _skip(base, "Leave request is not pending")
        manager = await self._session.get(User, leave.manager_id)
        if manager is None or parseaddr(message.sender)[1].lower() != manager.email.lower():
            return _skip(base, "Sender is not the assigned manager")

        if extracted.decision == EmailDecision.APPROVED:
            await approve_leave(self._session, leave_id, leave.manager_id, self._integrations, APPROVED_COMMENT)
        else:
            await reject_leave(self._session, leave_id, leave.manager_id, self._integrations, REJECTED_COMMENT)

        logger.info("Applied %s to leave %s from message %s", extracted.decision.value, leave_id, ref.id)
        return MessageResult(**base, outcome=MessageOutcome.APPLIED)


def _skip(fields: dict[str, Any], detail: str) -> MessageResult:
    logger.info("Skipping message %s: %s", fields["message_id"], detail)
    return MessageResult(**fields, outcome=MessageOutcome.SKIPPED, detail=detail)
