"""Issue and verify short-lived HS256 session tokens.

Tokens are stateless: nothing is stored server-side, so a token stays valid
until its ``exp`` claim passes.  Logging out only clears the client copy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from typing import Optional

from jose import ExpiredSignatureError
from jose import JWTError
from jose import jwt

from herald.errors import AuthError
from herald.errors import AuthFailure
from herald.utils.time import utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        """Seconds until expiry, measured from now."""
        return max(0, int((self.expires_at - utc_now()).total_seconds()))


class TokenService:
    """Sign and validate session tokens with a process-wide secret."""

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=2)):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, principal: str, *, now: Optional[datetime] = None) -> IssuedToken:
        """Return a signed token for an already-authenticated *principal*."""

        issued_at = now or utc_now()
        expires_at = issued_at + self.ttl
        # ``exp``/``iat`` must be integer UNIX timestamps.
        claims = {
            "sub": principal,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return IssuedToken(token=jwt.encode(claims, self._secret, algorithm=ALGORITHM), expires_at=expires_at)

    def verify(self, token: Optional[str]) -> str:
        """Return the principal embedded in *token* or raise :class:`AuthError`."""

        if not token or not token.strip():
            raise AuthError(AuthFailure.MISSING)

        try:
            claims = jwt.decode(token.strip(), self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise AuthError(AuthFailure.EXPIRED, details=str(exc)) from exc
        except JWTError as exc:
            raise AuthError(AuthFailure.MALFORMED, details=str(exc)) from exc

        principal = claims.get("sub")
        if not isinstance(principal, str) or not principal or "exp" not in claims:
            raise AuthError(AuthFailure.MALFORMED, details="missing sub/exp claim")
        return principal


__all__ = ["ALGORITHM", "IssuedToken", "TokenService"]
