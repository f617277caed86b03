"""Error taxonomy shared by every layer of the backend.

Each class carries the HTTP status it maps to and the *public* message sent
to clients.  Anything more specific goes into ``details``, which is only
logged.  Validation errors name the offending field in the public message.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class HeraldError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.details = details

    def envelope(self) -> dict[str, str]:
        return {"error": self.public_message}


class AuthFailure(str, Enum):
    """Why a session token was rejected."""

    MISSING = "missing"
    MALFORMED = "malformed"
    EXPIRED = "expired"


class AuthError(HeraldError):
    """Token absent, invalid or expired – always a generic 401 to the client."""

    status_code = 401
    public_message = "Unauthorized"

    def __init__(self, reason: AuthFailure, details: Optional[str] = None):
        super().__init__(f"authentication failed: {reason.value}", details=details)
        self.reason = reason


class InvalidCredentials(HeraldError):
    status_code = 401
    public_message = "Invalid credentials"


class ValidationError(HeraldError):
    """A required field is missing/empty or an upload is not acceptable."""

    status_code = 400
    public_message = "Validation failed"

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def envelope(self) -> dict[str, str]:
        return {"error": f"{self.field}: {self.message}"}


class StoreError(HeraldError):
    """The document store is unavailable or an operation failed."""

    public_message = "Storage failure"


class DocumentNotFound(StoreError):
    status_code = 404
    public_message = "Not found"

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class UploadError(HeraldError):
    """Object storage rejected or failed an image upload."""

    public_message = "Image upload failed"


class NotificationError(HeraldError):
    """Webhook delivery failed.  Logged by the notifier, never surfaced."""

    public_message = "Notification failed"


__all__ = [
    "AuthError",
    "AuthFailure",
    "DocumentNotFound",
    "HeraldError",
    "InvalidCredentials",
    "NotificationError",
    "StoreError",
    "UploadError",
    "ValidationError",
]
