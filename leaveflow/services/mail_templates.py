"""HTML email bodies for the leave workflow.

Every subject carries a ``[Leave <uuid>]`` marker and every body a
``Leave ID: <uuid>`` line, so a manager's reply can be matched back to its
request even when the subject has been edited.
"""

# ruff: noqa: TC003
from __future__ import annotations

import html
import re
import uuid
from dataclasses import dataclass

_LEAVE_ID_PATTERNS = (
    re.compile(r"\[Leave ([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})\]"),
    re.compile(r"Leave ID:\s*([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})"),
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


@dataclass(frozen=True)
class LeaveDetails:
    """Fields of a leave request that appear in notification emails."""

    leave_id: uuid.UUID
    employee_name: str
    employee_email: str
    leave_type: str
    start_date: str
    end_date: str
    reason: str
    urgency: int | None = None


def leave_marker(leave_id: uuid.UUID) -> str:
    return f"[Leave {leave_id}]"


def extract_leave_id(text: str) -> uuid.UUID | None:
    """Recover a leave id from a subject or body, or None if there is no marker."""
    for pattern in _LEAVE_ID_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return uuid.UUID(match.group(1))
    return None


def _details_table(details: LeaveDetails) -> str:
    rows = [
        ("Employee", f"{details.employee_name} ({details.employee_email})"),
        ("Type", details.leave_type),
        ("Dates", f"{details.start_date} to {details.end_date}"),
        ("Reason", details.reason),
    ]
    if details.urgency is not None:
        rows.append(("AI urgency", f"{details.urgency}/5"))
    cells = "".join(
        f"<tr><td><strong>{html.escape(label)}</strong></td><td>{html.escape(value)}</td></tr>" for label, value in rows
    )
    return f"<table>{cells}</table>"


def _footer(leave_id: uuid.UUID) -> str:
    return f'<p style="color:#666;font-size:12px">Leave ID: {leave_id}</p>'


def manager_notification(
    details: LeaveDetails,
    manager_name: str,
    approve_url: str,
    reject_url: str,
    dashboard_url: str,
) -> RenderedEmail:
    """Email to the bound manager with one-click approve and reject links."""
    subject = f"Leave request from {details.employee_name} {leave_marker(details.leave_id)}"
    body = (
        f"<p>Hello {html.escape(manager_name)},</p>"
        f"<p>{html.escape(details.employee_name)} has requested leave.</p>"
        f"{_details_table(details)}"
        f'<p><a href="{html.escape(approve_url)}">Approve</a> | '
        f'<a href="{html.escape(reject_url)}">Reject</a></p>'
        f'<p>You can also reply to this email with "approve" or "reject", '
        f'or review it on the <a href="{html.escape(dashboard_url)}">dashboard</a>.</p>'
        f"{_footer(details.leave_id)}"
    )
    return RenderedEmail(subject=subject, html=body)


def decision_notification(
    details: LeaveDetails,
    approved: bool,
    decided_by: str,
    comment: str | None = None,
) -> RenderedEmail:
    """Email to the employee once a manager has approved or rejected."""
    verdict = "approved" if approved else "rejected"
    subject = f"Your leave request was {verdict} {leave_marker(details.leave_id)}"
    comment_html = f"<p><strong>Comment:</strong> {html.escape(comment)}</p>" if comment else ""
    body = (
        f"<p>Hello {html.escape(details.employee_name)},</p>"
        f"<p>Your {html.escape(details.leave_type.lower())} leave from {html.escape(details.start_date)} "
        f"to {html.escape(details.end_date)} was <strong>{verdict}</strong> by {html.escape(decided_by)}.</p>"
        f"{comment_html}"
        f"{_footer(details.leave_id)}"
    )
    return RenderedEmail(subject=subject, html=body)


def decision_page(title: str, message: str) -> str:
    """Minimal confirmation page returned from an emailed decision link."""
    return (
        "<!doctype html><html><head><meta charset='utf-8'>"
        f"<title>{html.escape(title)}</title></head>"
        f"<body><h1>{html.escape(title)}</h1><p>{html.escape(message)}</p></body></html>"
    )
