"""Contract tests for the document store, run against the in-memory variant."""

from datetime import timedelta

import pytest

from herald.errors import DocumentNotFound
from herald.errors import StoreError
from herald.store.base import SortDirection


@pytest.mark.asyncio
async def test_create_assigns_id_and_timestamps(store):
    doc_id = await store.create("visitors", {"name": "Ada"})
    doc = await store.get("visitors", doc_id)

    assert doc.id == doc_id
    assert doc.fields == {"name": "Ada"}
    assert doc.created_at is not None
    assert doc.created_at == doc.updated_at


@pytest.mark.asyncio
async def test_caller_cannot_write_reserved_fields(store):
    doc_id = await store.create("visitors", {"name": "Ada", "createdAt": "1970", "id": "forged"})
    doc = await store.get("visitors", doc_id)

    assert doc.id == doc_id
    assert doc.fields == {"name": "Ada"}


@pytest.mark.asyncio
async def test_get_missing_document(store):
    with pytest.raises(DocumentNotFound) as exc_info:
        await store.get("admin", "profile")
    assert exc_info.value.status_code == 404
    assert isinstance(exc_info.value, StoreError)


@pytest.mark.asyncio
async def test_upsert_merges_fields(store):
    await store.upsert("admin", "profile", {"name": "A"})
    await store.upsert("admin", "profile", {"description": "B"})

    doc = await store.get("admin", "profile")
    assert doc.fields == {"name": "A", "description": "B"}
    assert doc.updated_at >= doc.created_at


@pytest.mark.asyncio
async def test_upsert_keeps_creation_time(store):
    await store.upsert("admin", "profile", {"name": "A"})
    created = (await store.get("admin", "profile")).created_at

    await store.upsert("admin", "profile", {"name": "B"})
    assert (await store.get("admin", "profile")).created_at == created


@pytest.mark.asyncio
async def test_list_orders_by_creation_time(store):
    first = await store.create("sections", {"name": "first"})
    second = await store.create("sections", {"name": "second"})
    third = await store.create("sections", {"name": "third"})
    store.backdate("sections", first, timedelta(minutes=2))
    store.backdate("sections", second, timedelta(minutes=1))

    ascending = [d.id for d in await store.list("sections").all()]
    descending = [d.id for d in await store.list("sections", direction=SortDirection.DESCENDING).all()]

    assert ascending == [first, second, third]
    assert descending == [third, second, first]


@pytest.mark.asyncio
async def test_equal_timestamps_tie_break_on_id(store):
    ids = [await store.create("posts", {"title": str(i)}) for i in range(4)]
    pinned = store.documents("posts")[ids[0]].created_at
    for doc_id in ids:
        store.documents("posts")[doc_id].created_at = pinned

    listed = [d.id for d in await store.list("posts").all()]
    assert listed == sorted(ids)


@pytest.mark.asyncio
async def test_list_is_restartable_and_limited(store):
    for i in range(5):
        await store.create("posts", {"title": str(i)})

    query = store.list("posts", limit=3)
    assert len(await query.all()) == 3
    assert len([doc async for doc in query]) == 3


@pytest.mark.asyncio
async def test_list_empty_collection(store):
    assert await store.list("nothing-here").all() == []


@pytest.mark.asyncio
async def test_returned_documents_are_copies(store):
    doc_id = await store.create("visitors", {"name": "Ada"})
    doc = await store.get("visitors", doc_id)
    doc.fields["name"] = "changed"

    assert (await store.get("visitors", doc_id)).fields["name"] == "Ada"


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    await store.upsert("admin", "profile", {"name": "A"})
    await store.delete("admin", "profile")
    await store.delete("admin", "profile")

    with pytest.raises(DocumentNotFound):
        await store.get("admin", "profile")


@pytest.mark.asyncio
async def test_injected_failure_surfaces_as_store_error(store):
    store.fail_with = "backend unavailable"

    with pytest.raises(StoreError) as exc_info:
        await store.create("visitors", {"name": "Ada"})
    assert exc_info.value.status_code == 500
    assert exc_info.value.details == "backend unavailable"
