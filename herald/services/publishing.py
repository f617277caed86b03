"""Publish/notify orchestration.

Every write follows the same order: validate, store any image, persist the
document, and only once the store has acknowledged the write, broadcast to
dashboards and hand a message to the notifier.  Routers stay thin and call
into :class:`PublishingService`.
"""

from __future__ import annotations

import logging
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from herald.errors import DocumentNotFound
from herald.errors import HeraldError
from herald.errors import StoreError
from herald.errors import ValidationError
from herald.events.broadcaster import EventBroadcaster
from herald.events.broadcaster import EventType
from herald.schemas.schemas import ADMIN
from herald.schemas.schemas import POSTS
from herald.schemas.schemas import PROFILE_ID
from herald.schemas.schemas import SECTIONS
from herald.schemas.schemas import DocumentKind
from herald.schemas.schemas import parse_fields
from herald.services.image_storage import ImageStorage
from herald.services.image_storage import ImageUpload
from herald.services.image_storage import StoredImage
from herald.services.image_storage import validate_image
from herald.services.notifier import Notifier
from herald.store.base import DocumentStore
from herald.store.base import SortDirection
from herald.store.base import StoredDocument

logger = logging.getLogger(__name__)


class PublishingService:
    """Business operations behind the HTTP endpoints."""

    def __init__(
        self,
        store: DocumentStore,
        images: ImageStorage,
        broadcaster: EventBroadcaster,
        notifier: Notifier,
    ):
        self.store = store
        self.images = images
        self.broadcaster = broadcaster
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Visitors
    # ------------------------------------------------------------------

    async def record_visitor(self, collection: str, data: Dict[str, Any]) -> StoredDocument:
        """Persist an anonymous visitor entry, then broadcast and notify."""

        entry = parse_fields(DocumentKind.VISITOR, data)
        doc_id = await self.store.create(collection, entry.document_fields())
        stored = await self.store.get(collection, doc_id)

        self.broadcaster.broadcast(EventType.NEW_ENTRY, stored.to_public())
        self.notifier.notify(f"New visitor: {entry.name}")
        return stored

    # ------------------------------------------------------------------
    # Sections & posts
    # ------------------------------------------------------------------

    async def publish_section(self, data: Dict[str, Any], image: Optional[ImageUpload] = None) -> StoredDocument:
        fields = parse_fields(DocumentKind.SECTION, data).document_fields()
        doc_id = await self._create_with_image(SECTIONS, fields, image)
        stored = await self.store.get(SECTIONS, doc_id)
        self.broadcaster.broadcast(EventType.NEW_SECTION, stored.to_public())
        return stored

    async def publish_post(self, data: Dict[str, Any], image: Optional[ImageUpload] = None) -> StoredDocument:
        fields = parse_fields(DocumentKind.POST, data).document_fields()
        doc_id = await self._create_with_image(POSTS, fields, image)
        stored = await self.store.get(POSTS, doc_id)
        self.broadcaster.broadcast(EventType.NEW_POST, stored.to_public())
        return stored

    # ------------------------------------------------------------------
    # Profile (singleton)
    # ------------------------------------------------------------------

    async def get_profile(self) -> Optional[StoredDocument]:
        try:
            return await self.store.get(ADMIN, PROFILE_ID)
        except DocumentNotFound:
            return None

    async def save_profile(self, data: Dict[str, Any], image: Optional[ImageUpload] = None) -> StoredDocument:
        """Merge *data* (and an optional new image) into the profile."""

        fields = parse_fields(DocumentKind.PROFILE, data).document_fields()
        if not fields and image is None:
            raise ValidationError("profile", "no fields supplied")

        previous = await self.get_profile() if image is not None else None
        stored_image = await self._store_image(image)
        if stored_image is not None:
            fields.update(imageUrl=stored_image.url, imageName=stored_image.name)

        try:
            await self.store.upsert(ADMIN, PROFILE_ID, fields)
        except StoreError:
            await self._discard_image(stored_image)
            raise

        if stored_image is not None and previous is not None:
            old_name = previous.fields.get("imageName")
            if old_name and old_name != stored_image.name:
                await self._delete_image_best_effort(old_name)

        stored = await self.store.get(ADMIN, PROFILE_ID)
        self.broadcaster.broadcast(EventType.PROFILE_UPDATED, stored.to_public())
        return stored

    async def delete_profile(self) -> StoredDocument:
        profile = await self.store.get(ADMIN, PROFILE_ID)

        image_name = profile.fields.get("imageName")
        if image_name:
            await self._delete_image_best_effort(image_name)

        await self.store.delete(ADMIN, PROFILE_ID)
        self.broadcaster.broadcast(EventType.PROFILE_DELETED, {"id": profile.id})
        return profile

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_documents(
        self,
        collection: str,
        *,
        direction: SortDirection = SortDirection.ASCENDING,
        limit: Optional[int] = None,
    ) -> List[StoredDocument]:
        return await self.store.list(collection, direction=direction, limit=limit).all()

    # ------------------------------------------------------------------
    # Image helpers
    # ------------------------------------------------------------------

    async def _create_with_image(
        self, collection: str, fields: Dict[str, Any], image: Optional[ImageUpload]
    ) -> str:
        """Upload *image* (if any), then create the document referencing it."""

        stored_image = await self._store_image(image)
        if stored_image is not None:
            fields.update(imageUrl=stored_image.url, imageName=stored_image.name)

        try:
            return await self.store.create(collection, fields)
        except StoreError:
            await self._discard_image(stored_image)
            raise

    async def _store_image(self, image: Optional[ImageUpload]) -> Optional[StoredImage]:
        if image is None:
            return None
        # Reject before any object-storage call is made.
        validate_image(image.content_type, len(image.data))
        return await self.images.upload(image.data, image.filename, image.content_type)

    async def _delete_image_best_effort(self, name: str) -> None:
        try:
            await self.images.delete(name)
        except HeraldError as exc:
            logger.warning("Could not delete image %s: %s (%s)", name, exc, exc.details)
        else:
            logger.info("Deleted image %s", name)

    async def _discard_image(self, stored_image: Optional[StoredImage]) -> None:
        if stored_image is not None:
            await self._delete_image_best_effort(stored_image.name)


__all__ = ["PublishingService"]
