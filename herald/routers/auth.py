"""Admin login/logout."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import Response

from herald.auth.passwords import verify_admin_credentials
from herald.auth.tokens import TokenService
from herald.config import Settings
from herald.dependencies.auth import SESSION_COOKIE_NAME
from herald.dependencies.auth import get_settings_dep
from herald.dependencies.auth import get_token_service
from herald.errors import InvalidCredentials
from herald.schemas.schemas import LoginIn
from herald.schemas.schemas import TokenOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

SESSION_COOKIE_PATH = "/"


def _set_session_cookie(response: Response, token: str, max_age: int, *, secure: bool) -> None:
    """Set the session cookie with proper security flags."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        path=SESSION_COOKIE_PATH,
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def _clear_session_cookie(response: Response, *, secure: bool) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path=SESSION_COOKIE_PATH,
        httponly=True,
        secure=secure,
        samesite="lax",
    )


@router.post("/login", response_model=TokenOut)
async def login(
    body: LoginIn,
    response: Response,
    settings: Settings = Depends(get_settings_dep),
    tokens: TokenService = Depends(get_token_service),
):
    """Exchange admin credentials for a session token (body + cookie)."""

    if not verify_admin_credentials(settings, body.username, body.password):
        logger.warning("Failed admin login attempt")
        raise InvalidCredentials()

    issued = tokens.issue(body.username)
    _set_session_cookie(
        response,
        issued.token,
        int(tokens.ttl.total_seconds()),
        secure=not settings.testing,
    )
    logger.info("Admin %s logged in", body.username)
    return TokenOut(token=issued.token, expires_in=issued.expires_in)


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Clear the session cookie.  The token itself stays valid until expiry."""

    _clear_session_cookie(response, secure=not request.app.state.settings.testing)
    return {"success": True}
