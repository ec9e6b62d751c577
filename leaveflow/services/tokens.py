"""Signed, expiring, purpose-bound tokens.

Three kinds are issued from the same secret:

* session tokens, carried as ``Authorization: Bearer`` on API calls;
* decision tokens, embedded in approve/reject links emailed to a manager.
  A decision token is bound to exactly one ``(leave_id, actor_id, action)``;
* OAuth state tokens, round-tripped through Google consent so the callback
  only accepts codes from a flow an admin started.

Tokens are stateless. There is no revocation list, so expiry is the only
bound on how long a leaked link stays usable.
"""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from leaveflow.exceptions import AuthorizationError, TokenError
from leaveflow.models.enums import DecisionAction, Role

SESSION_PURPOSE = "session"
DECISION_PURPOSE = "decision"
OAUTH_STATE_PURPOSE = "oauth_state"


class SessionClaims(BaseModel):
    user_id: uuid.UUID
    role: Role
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime


class DecisionClaims(BaseModel):
    leave_id: uuid.UUID
    actor_id: uuid.UUID
    action: DecisionAction
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies HS256 JWTs for sessions and emailed decision links."""

    def __init__(self, secret: str, issuer: str, audience: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._algorithm = algorithm

    # -- encoding ----------------------------------------------------------

    def _encode(self, claims: dict[str, Any], ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {
            **claims,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def _decode(self, token: str, purpose: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
            )
        except ExpiredSignatureError as exc:
            raise TokenError("Token has expired") from exc
        except JWTError as exc:
            raise TokenError("Invalid token") from exc

        if payload.get("purpose") != purpose:
            raise TokenError("Token was not issued for this purpose")
        return payload

    @staticmethod
    def _timestamps(payload: dict[str, Any]) -> tuple[datetime, datetime]:
        return (
            datetime.fromtimestamp(payload["iat"], UTC),
            datetime.fromtimestamp(payload["exp"], UTC),
        )

    # -- sessions ----------------------------------------------------------

    def issue_session(self, user_id: uuid.UUID, role: Role, email: str, name: str, ttl: timedelta) -> str:
        """Issue a bearer token for API access."""
        return self._encode(
            {
                "sub": str(user_id),
                "role": role.value,
                "email": email,
                "name": name,
                "purpose": SESSION_PURPOSE,
            },
            ttl,
        )

    def verify_session(self, token: str) -> SessionClaims:
        """Return the claims of a valid session token or raise TokenError."""
        payload = self._decode(token, SESSION_PURPOSE)
        issued_at, expires_at = self._timestamps(payload)
        try:
            return SessionClaims(
                user_id=payload.get("sub"),
                role=payload.get("role"),
                email=payload.get("email"),
                name=payload.get("name"),
                issued_at=issued_at,
                expires_at=expires_at,
            )
        except PydanticValidationError as exc:
            raise TokenError("Token is missing required claims") from exc

    # -- decision links ----------------------------------------------------

    def issue_decision(
        self,
        leave_id: uuid.UUID,
        actor_id: uuid.UUID,
        action: DecisionAction,
        ttl: timedelta,
    ) -> str:
        """Issue a token that lets ``actor_id`` perform ``action`` on ``leave_id`` only."""
        return self._encode(
            {
                "leave_id": str(leave_id),
                "actor_id": str(actor_id),
                "action": action.value,
                "purpose": DECISION_PURPOSE,
            },
            ttl,
        )

    def verify_decision(self, token: str) -> DecisionClaims:
        """Check signature, expiry and purpose. Binding is checked separately."""
        payload = self._decode(token, DECISION_PURPOSE)
        issued_at, expires_at = self._timestamps(payload)
        try:
            return DecisionClaims(
                leave_id=payload.get("leave_id"),
                actor_id=payload.get("actor_id"),
                action=payload.get("action"),
                issued_at=issued_at,
                expires_at=expires_at,
            )
        except PydanticValidationError as exc:
            raise TokenError("Token is missing required claims") from exc

    # -- OAuth state -------------------------------------------------------

    def issue_oauth_state(self, actor_id: uuid.UUID, ttl: timedelta) -> str:
        return self._encode({"sub": str(actor_id), "purpose": OAUTH_STATE_PURPOSE}, ttl)

    def verify_oauth_state(self, token: str) -> uuid.UUID:
        """Return the id of the admin who started the consent flow."""
        payload = self._decode(token, OAUTH_STATE_PURPOSE)
        try:
            return uuid.UUID(str(payload.get("sub")))
        except ValueError as exc:
            raise TokenError("Token is missing required claims") from exc


def check_decision_binding(
    claims: DecisionClaims,
    leave_id: uuid.UUID,
    actor_id: uuid.UUID,
    action: DecisionAction,
) -> None:
    """Raise AuthorizationError unless the token was minted for exactly this call."""
    if claims.leave_id != leave_id:
        raise AuthorizationError("Decision token was issued for a different leave request")
    if claims.actor_id != actor_id:
        raise AuthorizationError("Decision token was issued for a different actor")
    if claims.action != action:
        raise AuthorizationError(f"Decision token does not permit '{action.value}'")
