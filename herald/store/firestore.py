"""Firestore-backed :class:`~herald.store.base.DocumentStore`.

Timestamps are written as ``SERVER_TIMESTAMP`` sentinels so ordering never
depends on the clock of whichever process handled the request.
"""

from __future__ import annotations

import logging
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.oauth2 import service_account

from herald.config import Settings
from herald.errors import DocumentNotFound
from herald.errors import StoreError
from herald.store.base import CREATED_AT
from herald.store.base import UPDATED_AT
from herald.store.base import DocumentQuery
from herald.store.base import DocumentStore
from herald.store.base import SortDirection
from herald.store.base import StoredDocument
from herald.store.base import clean_fields

logger = logging.getLogger(__name__)

# Firestore's name for the document-id pseudo field.
_DOCUMENT_ID = "__name__"

_BACKEND_ERRORS = (GoogleAPIError, OSError)


def _snapshot_to_document(collection: str, snapshot) -> StoredDocument:
    data = snapshot.to_dict() or {}
    created_at = data.pop(CREATED_AT, None)
    updated_at = data.pop(UPDATED_AT, None)
    return StoredDocument(
        id=snapshot.id,
        collection=collection,
        fields=data,
        created_at=created_at,
        updated_at=updated_at,
    )


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by ``google.cloud.firestore.AsyncClient``."""

    def __init__(self, client: firestore.AsyncClient):
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreDocumentStore":
        info = settings.firebase_credentials
        if not info:
            raise RuntimeError("FIREBASE_CONFIG is required to connect to Firestore")
        credentials = service_account.Credentials.from_service_account_info(info)
        client = firestore.AsyncClient(project=info.get("project_id"), credentials=credentials)
        return cls(client)

    async def create(self, collection: str, fields: Dict[str, Any]) -> str:
        ref = self._client.collection(collection).document()
        payload = clean_fields(fields)
        payload[CREATED_AT] = firestore.SERVER_TIMESTAMP
        payload[UPDATED_AT] = firestore.SERVER_TIMESTAMP
        try:
            # ``create`` fails instead of overwriting an existing document.
            await ref.create(payload)
        except _BACKEND_ERRORS as exc:
            logger.error("Firestore create in %s failed: %s", collection, exc)
            raise StoreError(details=str(exc)) from exc
        return ref.id

    async def upsert(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        ref = self._client.collection(collection).document(doc_id)
        payload = clean_fields(fields)
        payload[UPDATED_AT] = firestore.SERVER_TIMESTAMP
        try:
            snapshot = await ref.get()
            if not snapshot.exists:
                payload[CREATED_AT] = firestore.SERVER_TIMESTAMP
            await ref.set(payload, merge=True)
        except _BACKEND_ERRORS as exc:
            logger.error("Firestore upsert of %s/%s failed: %s", collection, doc_id, exc)
            raise StoreError(details=str(exc)) from exc

    async def get(self, collection: str, doc_id: str) -> StoredDocument:
        try:
            snapshot = await self._client.collection(collection).document(doc_id).get()
        except _BACKEND_ERRORS as exc:
            logger.error("Firestore get of %s/%s failed: %s", collection, doc_id, exc)
            raise StoreError(details=str(exc)) from exc
        if not snapshot.exists:
            raise DocumentNotFound(collection, doc_id)
        return _snapshot_to_document(collection, snapshot)

    def list(
        self,
        collection: str,
        *,
        direction: SortDirection = SortDirection.ASCENDING,
        limit: Optional[int] = None,
    ) -> DocumentQuery:
        order = firestore.Query.ASCENDING if direction is SortDirection.ASCENDING else firestore.Query.DESCENDING

        async def _run() -> AsyncIterator[StoredDocument]:
            query = (
                self._client.collection(collection)
                .order_by(CREATED_AT, direction=order)
                .order_by(_DOCUMENT_ID, direction=order)
            )
            if limit is not None:
                query = query.limit(limit)
            try:
                async for snapshot in query.stream():
                    yield _snapshot_to_document(collection, snapshot)
            except _BACKEND_ERRORS as exc:
                logger.error("Firestore query on %s failed: %s", collection, exc)
                raise StoreError(details=str(exc)) from exc

        return DocumentQuery(_run)

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._client.collection(collection).document(doc_id).delete()
        except _BACKEND_ERRORS as exc:
            logger.error("Firestore delete of %s/%s failed: %s", collection, doc_id, exc)
            raise StoreError(details=str(exc)) from exc

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            result = close()
            if hasattr(result, "__await__"):
                await result


__all__ = ["FirestoreDocumentStore"]
