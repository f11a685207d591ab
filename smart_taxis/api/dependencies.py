"""FastAPI dependency injection helpers.

Services live on ``app.state`` (built by the lifespan in ``app.py``); the
helpers below hand them to routes and turn auth-service exceptions into
HTTP responses.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from smart_taxis.domain.enums import Capability
from smart_taxis.services.analytics import AnalyticsService
from smart_taxis.services.auth import (
    AuthService,
    InvalidToken,
    MissingCredentials,
    PermissionDenied,
    Principal,
    authorize,
)
from smart_taxis.services.dispatch import DispatchService

TOKEN_COOKIE = "access_token"

bearer_scheme = HTTPBearer(auto_error=False)


class LoginRequired(Exception):
    """Raised by HTML views; the app redirects to the login page."""

    def __init__(self, next_path: str = "/"):
        self.next_path = next_path


def get_dispatch(request: Request) -> DispatchService:
    return request.app.state.dispatch


def get_auth(request: Request) -> AuthService:
    return request.app.state.auth


def get_analytics(request: Request) -> AnalyticsService:
    return request.app.state.analytics


def _token_from(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(TOKEN_COOKIE)


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth),
) -> Optional[Principal]:
    """The authenticated caller, or ``None`` when no credential was sent."""
    token = _token_from(request, credentials)
    if not token:
        return None
    try:
        return await auth.authenticate(token)
    except InvalidToken as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc


def require(capability: Capability):
    """Dependency factory guarding a JSON endpoint with *capability*."""

    async def _check(
        principal: Optional[Principal] = Depends(get_principal),
    ) -> Principal:
        try:
            return authorize(principal, capability)
        except MissingCredentials as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except PermissionDenied as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc

    return _check


def require_view(capability: Capability):
    """Like ``require`` but sends browsers to the login page instead."""

    async def _check(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        auth: AuthService = Depends(get_auth),
    ) -> Principal:
        token = _token_from(request, credentials)
        try:
            principal = await auth.authenticate(token)
            return authorize(principal, capability)
        except (MissingCredentials, InvalidToken, PermissionDenied) as exc:
            raise LoginRequired(request.url.path) from exc

    return _check
