"""Admin credential checks.

Passwords are verified against an Argon2id hash when
``ADMIN_PASSWORD_HASH`` is configured.  Hashes printed by
``python -m herald hash-password`` are standard ``$argon2id$...`` strings
and can be pasted straight into the environment.
"""

from __future__ import annotations

import hmac
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError
from argon2.exceptions import VerificationError

from herald.config import Settings

_default_hasher = PasswordHasher()


def hash_password(password: str, *, time_cost: Optional[int] = None) -> str:
    """Return the encoded Argon2id hash of *password*."""

    hasher = _default_hasher if time_cost is None else PasswordHasher(time_cost=time_cost)
    return hasher.hash(password)


def check_password(password: str, encoded: str) -> bool:
    """Return *True* when *password* matches *encoded*.

    Any malformed encoding is treated as a mismatch.
    """

    if not encoded:
        return False
    try:
        return _default_hasher.verify(encoded, password)
    except (VerificationError, InvalidHashError):
        return False


def verify_admin_credentials(settings: Settings, username: str, password: str) -> bool:
    """Check *username*/*password* against the configured admin identity."""

    expected_user = settings.admin_username or ""
    # The password is checked even when the username is wrong or unset.
    user_ok = hmac.compare_digest(username.encode(), expected_user.encode()) and bool(expected_user)
    if settings.admin_password_hash is not None:
        password_ok = check_password(password, settings.admin_password_hash)
    elif settings.admin_password:
        password_ok = hmac.compare_digest(password.encode(), settings.admin_password.encode())
    else:
        password_ok = False
    return user_ok and password_ok


__all__ = ["check_password", "hash_password", "verify_admin_credentials"]
