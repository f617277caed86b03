"""Document store adapters."""

from herald.store.base import DocumentQuery
from herald.store.base import DocumentStore
from herald.store.base import SortDirection
from herald.store.base import StoredDocument

__all__ = ["DocumentQuery", "DocumentStore", "SortDirection", "StoredDocument"]
