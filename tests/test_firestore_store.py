"""FirestoreDocumentStore against a mocked AsyncClient."""

from datetime import datetime
from datetime import timezone
from unittest.mock import AsyncMock
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import ServiceUnavailable
from google.cloud import firestore

from herald.errors import DocumentNotFound
from herald.errors import StoreError
from herald.store.base import SortDirection
from herald.store.firestore import FirestoreDocumentStore

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _snapshot(doc_id, data, exists=True):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = exists
    snap.to_dict.return_value = dict(data) if exists else None
    return snap


@pytest.fixture
def ref():
    ref = MagicMock()
    ref.id = "generated-id"
    ref.create = AsyncMock()
    ref.set = AsyncMock()
    ref.get = AsyncMock()
    ref.delete = AsyncMock()
    return ref


@pytest.fixture
def client(ref):
    client = MagicMock()
    client.collection.return_value.document.return_value = ref
    return client


@pytest.mark.asyncio
async def test_create_never_overwrites_and_uses_server_time(client, ref):
    store = FirestoreDocumentStore(client)

    doc_id = await store.create("visitors", {"name": "Ada", "createdAt": "forged"})

    assert doc_id == "generated-id"
    client.collection.assert_called_with("visitors")
    client.collection.return_value.document.assert_called_with()
    payload = ref.create.await_args.args[0]
    assert payload["name"] == "Ada"
    assert payload["createdAt"] is firestore.SERVER_TIMESTAMP
    assert payload["updatedAt"] is firestore.SERVER_TIMESTAMP
    ref.set.assert_not_called()


@pytest.mark.asyncio
async def test_backend_failure_becomes_store_error(client, ref):
    ref.create.side_effect = ServiceUnavailable("firestore down")

    with pytest.raises(StoreError) as exc_info:
        await FirestoreDocumentStore(client).create("visitors", {"name": "Ada"})
    assert "firestore down" in exc_info.value.details


@pytest.mark.asyncio
async def test_upsert_merges_and_sets_created_only_when_new(client, ref):
    store = FirestoreDocumentStore(client)

    ref.get.return_value = _snapshot("profile", {}, exists=False)
    await store.upsert("admin", "profile", {"name": "A"})
    first = ref.set.await_args
    assert first.kwargs == {"merge": True}
    assert "createdAt" in first.args[0]

    ref.get.return_value = _snapshot("profile", {"name": "A", "createdAt": CREATED})
    await store.upsert("admin", "profile", {"description": "B"})
    second = ref.set.await_args
    assert second.kwargs == {"merge": True}
    assert "createdAt" not in second.args[0]
    assert second.args[0]["description"] == "B"


@pytest.mark.asyncio
async def test_get_maps_snapshot(client, ref):
    ref.get.return_value = _snapshot("profile", {"name": "A", "createdAt": CREATED, "updatedAt": CREATED})

    doc = await FirestoreDocumentStore(client).get("admin", "profile")

    assert doc.id == "profile"
    assert doc.fields == {"name": "A"}
    assert doc.created_at == CREATED
    assert doc.to_public()["createdAt"] == CREATED.isoformat()


@pytest.mark.asyncio
async def test_get_missing(client, ref):
    ref.get.return_value = _snapshot("profile", {}, exists=False)

    with pytest.raises(DocumentNotFound):
        await FirestoreDocumentStore(client).get("admin", "profile")


@pytest.mark.asyncio
async def test_list_orders_by_created_then_id(client):
    snapshots = [_snapshot("b", {"name": "two", "createdAt": CREATED}), _snapshot("a", {"name": "one"})]

    async def stream():
        for snap in snapshots:
            yield snap

    query = MagicMock()
    query.order_by.return_value = query
    query.limit.return_value = query
    query.stream.side_effect = lambda: stream()
    client.collection.return_value = query

    docs = await FirestoreDocumentStore(client).list("posts", direction=SortDirection.DESCENDING, limit=10).all()

    assert [d.id for d in docs] == ["b", "a"]
    assert [c.args[0] for c in query.order_by.call_args_list] == ["createdAt", "__name__"]
    assert all(c.kwargs["direction"] == firestore.Query.DESCENDING for c in query.order_by.call_args_list)
    query.limit.assert_called_once_with(10)


@pytest.mark.asyncio
async def test_list_failure_is_store_error(client):
    async def broken():
        raise ServiceUnavailable("gone")
        yield  # pragma: no cover

    query = MagicMock()
    query.order_by.return_value = query
    query.stream.side_effect = lambda: broken()
    client.collection.return_value = query

    with pytest.raises(StoreError):
        await FirestoreDocumentStore(client).list("posts").all()


@pytest.mark.asyncio
async def test_close_accepts_sync_or_async_client_close(client):
    client.close = MagicMock(return_value=None)
    await FirestoreDocumentStore(client).close()
    client.close.assert_called_once()

    client.close = AsyncMock()
    await FirestoreDocumentStore(client).close()
    client.close.assert_awaited_once()
