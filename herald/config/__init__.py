"""Centralised configuration helper.

Every tunable is read from the environment exactly once per call to
:func:`get_settings`.  A ``.env`` file in the working directory (or the one
named by ``HERALD_ENV_FILE``) is loaded first so local development does not
need exported variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv


def _truthy(value: str | None) -> bool:  # noqa: D401 – small helper
    """Return *True* when *value* looks like an affirmative string."""

    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:  # noqa: D401 – simple data container
    """Lightweight settings container populated from environment variables."""

    # Runtime flags -----------------------------------------------------
    testing: bool

    # Session tokens ----------------------------------------------------
    jwt_secret: str
    token_ttl_hours: float

    # Admin identity ----------------------------------------------------
    admin_username: str
    admin_password: str | None
    admin_password_hash: str | None

    # Google Cloud ------------------------------------------------------
    firebase_config: str | None
    firebase_storage_bucket: str | None

    # Notifications -----------------------------------------------------
    notify_webhook_url: str | None

    # Misc
    log_level: str
    allowed_cors_origins: str
    port: int

    @property
    def firebase_credentials(self) -> dict[str, Any] | None:
        """Return the parsed service-account JSON or *None* when unset."""

        if not self.firebase_config:
            return None
        return json.loads(self.firebase_config)

    @property
    def storage_bucket(self) -> str | None:
        if self.firebase_storage_bucket:
            return self.firebase_storage_bucket
        creds = self.firebase_credentials
        if creds and creds.get("project_id"):
            return f"{creds['project_id']}.appspot.com"
        return None

    @property
    def cors_origins(self) -> list[str]:
        if self.testing:
            return ["*"]
        return [o.strip() for o in self.allowed_cors_origins.split(",") if o.strip()]

    # Helper for tests to override values at runtime -------------------
    def override(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise AttributeError(f"Settings has no attribute '{key}'")
            setattr(self, key, value)


def _load_settings() -> Settings:  # noqa: D401 – helper
    """Populate :class:`Settings` from environment variables."""

    env_path = Path(os.getenv("HERALD_ENV_FILE", ".env"))
    if env_path.exists():
        # Explicit environment wins over the file.
        load_dotenv(env_path, override=False)

    return Settings(
        testing=_truthy(os.getenv("TESTING")),
        jwt_secret=os.getenv("JWT_SECRET", ""),
        token_ttl_hours=float(os.getenv("TOKEN_TTL_HOURS", "2")),
        admin_username=os.getenv("ADMIN_USERNAME", ""),
        admin_password=os.getenv("ADMIN_PASSWORD") or None,
        admin_password_hash=os.getenv("ADMIN_PASSWORD_HASH") or None,
        firebase_config=os.getenv("FIREBASE_CONFIG") or None,
        firebase_storage_bucket=os.getenv("FIREBASE_STORAGE_BUCKET") or None,
        notify_webhook_url=os.getenv("NOTIFY_WEBHOOK_URL") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        allowed_cors_origins=os.getenv("ALLOWED_CORS_ORIGINS", ""),
        port=int(os.getenv("PORT", "3000")),
    )


# ------------------------------------------------------------------
# Runtime validation – fail fast when *required* secrets are missing.
# ------------------------------------------------------------------


def _validate_required(settings: Settings) -> None:  # noqa: D401 – helper
    """Abort startup when mandatory configuration is missing.

    The document store credentials, the signing secret and the admin identity
    are mandatory.  A missing notification webhook is *not* an error: the
    dispatcher simply degrades to a no-op.
    """

    if settings.testing:
        return

    missing_vars = []

    if not settings.firebase_config:
        missing_vars.append("FIREBASE_CONFIG")
    else:
        try:
            settings.firebase_credentials
        except json.JSONDecodeError:
            missing_vars.append("FIREBASE_CONFIG (must be service-account JSON)")

    weak = settings.jwt_secret.strip() == "" or len(settings.jwt_secret) < 16
    if weak:
        missing_vars.append("JWT_SECRET (must be >=16 chars)")

    if not settings.admin_username:
        missing_vars.append("ADMIN_USERNAME")

    if not settings.admin_password and not settings.admin_password_hash:
        missing_vars.append("ADMIN_PASSWORD or ADMIN_PASSWORD_HASH")

    if missing_vars:
        raise RuntimeError(
            f"CRITICAL: Missing required environment variables: {', '.join(missing_vars)}\n"
            f"Set these in your .env file or deployment environment."
        )


def get_settings() -> Settings:  # noqa: D401 – public accessor
    """Return :class:`Settings` instance loaded from environment."""

    settings = _load_settings()
    _validate_required(settings)
    return settings


__all__ = [
    "Settings",
    "get_settings",
]
