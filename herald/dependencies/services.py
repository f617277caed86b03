"""Dependency providers for the per-application collaborators.

All of them live on ``app.state`` (set up by :func:`herald.main.create_app`)
so tests can build an app with in-memory replacements.
"""

from __future__ import annotations

from typing import Any
from typing import Dict
from typing import Optional
from typing import Tuple

from fastapi import Request
from starlette.datastructures import UploadFile as StarletteUploadFile

from herald.errors import ValidationError
from herald.events.broadcaster import EventBroadcaster
from herald.services.image_storage import ImageUpload
from herald.services.image_storage import validate_image
from herald.services.publishing import PublishingService

IMAGE_FIELD = "image"


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_publishing_service(request: Request) -> PublishingService:
    return request.app.state.publishing


async def read_payload(request: Request) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """Return ``(fields, image)`` from a JSON, urlencoded or multipart body.

    The image's MIME type and size are validated here, before the body is
    handed to the service and long before any storage call.
    """

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        fields: Dict[str, Any] = {}
        image: Optional[ImageUpload] = None
        for key, value in form.multi_items():
            if isinstance(value, StarletteUploadFile):
                if key != IMAGE_FIELD or not value.filename:
                    continue
                if value.size is not None:
                    # Reject oversized or mistyped uploads before reading them.
                    validate_image(value.content_type, value.size)
                data = await value.read()
                validate_image(value.content_type, len(data))
                image = ImageUpload(data=data, filename=value.filename, content_type=value.content_type)
            else:
                fields[key] = value
        return fields, image

    raw = await request.body()
    if not raw:
        return {}, None
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError("body", "must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("body", "must be a JSON object")
    return body, None


__all__ = ["get_broadcaster", "get_publishing_service", "read_payload"]
