"""Session tokens and admin credential checks."""

from herald.auth.tokens import IssuedToken
from herald.auth.tokens import TokenService

__all__ = ["IssuedToken", "TokenService"]
