# ruff: noqa: B008, TC003
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from leaveflow.config import Settings
from leaveflow.db import SessionDep
from leaveflow.exceptions import AuthenticationError, AuthorizationError
from leaveflow.models.enums import Role
from leaveflow.models.user import User
from leaveflow.schemas.auth import AuthContext
from leaveflow.services.classifier import ClassifierGateway
from leaveflow.services.leave import LeaveIntegrations
from leaveflow.services.notifier import Notifier
from leaveflow.services.tokens import TokenService

_bearer = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Process-wide collaborators (built once in create_app)
# ---------------------------------------------------------------------------


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_classifier(request: Request) -> ClassifierGateway:
    return request.app.state.classifier


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
TokensDep = Annotated[TokenService, Depends(get_token_service)]
ClassifierDep = Annotated[ClassifierGateway, Depends(get_classifier)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]


def get_integrations(
    classifier: ClassifierDep,
    notifier: NotifierDep,
    tokens: TokensDep,
    settings: SettingsDep,
) -> LeaveIntegrations:
    return LeaveIntegrations(classifier=classifier, notifier=notifier, tokens=tokens, settings=settings)


IntegrationsDep = Annotated[LeaveIntegrations, Depends(get_integrations)]


# ---------------------------------------------------------------------------
# Session authentication
# ---------------------------------------------------------------------------


async def get_auth_context(
    session: SessionDep,
    tokens: TokensDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> AuthContext:
    """Resolve the bearer session token to the current, active user.

    Role and active flag come from the database, not the token, so a
    demotion or deactivation takes effect on the next request.
    """
    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    claims = tokens.verify_session(credentials.credentials)

    user = await session.get(User, claims.user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("User is not active")
    return AuthContext(user_id=user.id, role=Role(user.role), email=user.email, name=user.name)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


def require_roles(*roles: Role):
    """Build a dependency that admits only the given roles."""

    async def _check(auth: AuthDep) -> AuthContext:
        if auth.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise AuthorizationError(f"Requires role: {allowed}")
        return auth

    return _check


AdminDep = Annotated[AuthContext, Depends(require_roles(Role.ADMIN))]
EmployeeDep = Annotated[AuthContext, Depends(require_roles(Role.EMPLOYEE))]
ApproverDep = Annotated[AuthContext, Depends(require_roles(Role.MANAGER, Role.ADMIN))]
