"""FastAPI dependencies that guard administrative endpoints.

A protected request moves through
``Unauthenticated -> TokenExtracted -> TokenVerified -> Authorized``.  Any
failed step raises :class:`~herald.errors.AuthError`, which the application
maps to a generic 401 regardless of the reason.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends
from fastapi import Request

from herald.auth.tokens import TokenService
from herald.config import Settings
from herald.errors import AuthError
from herald.errors import AuthFailure

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "herald_session"


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def extract_token(request: Request) -> Optional[str]:
    """Return the session token from the cookie or the bearer header.

    The cookie wins when both are present.
    """

    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if cookie:
        return cookie

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


def require_admin(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """Return the authenticated principal or raise :class:`AuthError`."""

    token = extract_token(request)
    if token is None:
        raise AuthError(AuthFailure.MISSING)

    try:
        principal = tokens.verify(token)
    except AuthError as exc:
        logger.info("Rejected token on %s: %s", request.url.path, exc.reason.value)
        raise

    settings: Settings = request.app.state.settings
    if principal != settings.admin_username:
        # Signed with our secret but for an identity that is no longer the admin.
        raise AuthError(AuthFailure.MALFORMED, details="unknown principal")

    request.state.principal = principal
    return principal


__all__ = [
    "SESSION_COOKIE_NAME",
    "extract_token",
    "get_settings_dep",
    "get_token_service",
    "require_admin",
]
