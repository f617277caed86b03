"""Abstract document store contract.

The rest of the backend only ever talks to :class:`DocumentStore`; the
production implementation wraps Firestore and the test-suite uses the
in-memory variant from :mod:`herald.testing.memory`.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from enum import Enum
from typing import Any
from typing import AsyncIterator
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"

# Keys the store owns; callers can never write them through ``fields``.
RESERVED_FIELDS = frozenset({"id", CREATED_AT, UPDATED_AT})


class SortDirection(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass
class StoredDocument:
    id: str
    collection: str
    fields: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_public(self) -> Dict[str, Any]:
        """Flatten into the JSON shape served to clients and dashboards."""

        data: Dict[str, Any] = {"id": self.id}
        data.update(self.fields)
        data[CREATED_AT] = self.created_at.isoformat() if self.created_at else None
        data[UPDATED_AT] = self.updated_at.isoformat() if self.updated_at else None
        return data


class DocumentQuery:
    """Lazy, finite and restartable sequence of documents.

    Each ``async for`` re-runs the underlying query from the start.
    """

    def __init__(self, run: Callable[[], AsyncIterator[StoredDocument]]):
        self._run = run

    def __aiter__(self) -> AsyncIterator[StoredDocument]:
        return self._run()

    async def all(self) -> List[StoredDocument]:
        return [doc async for doc in self]


def clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop store-owned keys from caller supplied *fields*."""

    return {k: v for k, v in fields.items() if k not in RESERVED_FIELDS}


class DocumentStore(ABC):
    """Typed CRUD facade over an external document store."""

    @abstractmethod
    async def create(self, collection: str, fields: Dict[str, Any]) -> str:
        """Insert a new document with a generated id and return that id."""

    @abstractmethod
    async def upsert(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge *fields* into ``collection/doc_id``, creating it if absent."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> StoredDocument:
        """Return the document or raise :class:`~herald.errors.DocumentNotFound`."""

    @abstractmethod
    def list(
        self,
        collection: str,
        *,
        direction: SortDirection = SortDirection.ASCENDING,
        limit: Optional[int] = None,
    ) -> DocumentQuery:
        """Return documents ordered by creation time, id as tie-break."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove ``collection/doc_id``.  Deleting a missing document is a no-op."""

    async def close(self) -> None:  # pragma: no cover – optional hook
        return None


__all__ = [
    "CREATED_AT",
    "DocumentQuery",
    "DocumentStore",
    "RESERVED_FIELDS",
    "SortDirection",
    "StoredDocument",
    "UPDATED_AT",
    "clean_fields",
]
