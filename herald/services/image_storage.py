"""Image upload validation and object storage.

Validation happens before any storage call so a rejected upload never
touches the bucket.  The bucket client (google-cloud-storage) is blocking,
so every call is pushed to a worker thread with :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Final
from typing import Optional

from herald.config import Settings
from herald.errors import UploadError
from herald.errors import ValidationError
from herald.utils.time import to_millis
from herald.utils.time import utc_now

logger = logging.getLogger(__name__)

# Constants ------------------------------------------------------------------

MAX_IMAGE_BYTES: Final[int] = 5 * 1024 * 1024  # 5 MiB
ALLOWED_MIME: Final[frozenset[str]] = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})
IMAGE_PREFIX: Final[str] = "images"
PUBLIC_URL_BASE: Final[str] = "https://storage.googleapis.com"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredImage:
    name: str
    url: str


@dataclass(frozen=True)
class ImageUpload:
    """An image received from a request, not yet stored."""

    data: bytes
    filename: str
    content_type: str


def validate_image(content_type: Optional[str], size: int) -> None:
    """Raise :class:`ValidationError` unless the upload is an acceptable image."""

    if content_type not in ALLOWED_MIME:
        raise ValidationError("image", f"unsupported image type {content_type or 'unknown'!s}")
    if size == 0:
        raise ValidationError("image", "file is empty")
    if size > MAX_IMAGE_BYTES:
        raise ValidationError("image", "file exceeds 5 MB")


def build_object_name(filename: str, *, now: Optional[datetime] = None) -> str:
    """Return ``images/<epoch-millis>-<sanitised filename>``."""

    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    safe = _UNSAFE_CHARS.sub("_", base).strip("._") or "upload"
    return f"{IMAGE_PREFIX}/{to_millis(now or utc_now())}-{safe}"


class ImageStorage(ABC):
    """Binary object store for uploaded images."""

    @abstractmethod
    async def upload(self, data: bytes, filename: str, content_type: str) -> StoredImage:
        """Persist *data* and return its name and public URL."""

    @abstractmethod
    async def delete(self, name: str) -> None:
        """Remove a previously stored object."""


class GCSImageStorage(ImageStorage):
    """Images stored in a Google Cloud Storage bucket."""

    def __init__(self, bucket):
        self._bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "GCSImageStorage":
        from google.cloud import storage
        from google.oauth2 import service_account

        info = settings.firebase_credentials
        bucket_name = settings.storage_bucket
        if not info or not bucket_name:
            raise RuntimeError("FIREBASE_CONFIG and a storage bucket are required for image uploads")
        credentials = service_account.Credentials.from_service_account_info(info)
        client = storage.Client(project=info.get("project_id"), credentials=credentials)
        return cls(client.bucket(bucket_name))

    def public_url(self, name: str) -> str:
        return f"{PUBLIC_URL_BASE}/{self._bucket.name}/{name}"

    async def upload(self, data: bytes, filename: str, content_type: str) -> StoredImage:
        name = build_object_name(filename)
        blob = self._bucket.blob(name)
        try:
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        except Exception as exc:  # noqa: BLE001 – surface every backend failure as UploadError
            logger.error("Upload of %s to bucket %s failed: %s", name, self._bucket.name, exc)
            raise UploadError(details=str(exc)) from exc
        logger.info("Stored image %s (%d bytes)", name, len(data))
        return StoredImage(name=name, url=self.public_url(name))

    async def delete(self, name: str) -> None:
        try:
            await asyncio.to_thread(self._bucket.blob(name).delete)
        except Exception as exc:  # noqa: BLE001
            raise UploadError(f"could not delete {name}", details=str(exc)) from exc


__all__ = [
    "ALLOWED_MIME",
    "GCSImageStorage",
    "ImageStorage",
    "ImageUpload",
    "MAX_IMAGE_BYTES",
    "StoredImage",
    "build_object_name",
    "validate_image",
]
