"""Unit tests for the in-memory document store and live queries."""

import pytest

from libs.common.errors import NotFoundError, StoreWriteError, WriteConflictError
from libs.db.query import QuerySpec
from libs.db.store import MemoryDocumentStore


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_get_roundtrip_injects_id_and_created_at():
    store = MemoryDocumentStore()

    doc_id = await store.create("media", {"title": "Clip", "id": "ignored"})
    doc = await store.get("media", doc_id)

    assert doc["id"] == doc_id
    assert doc["title"] == "Clip"
    assert "createdAt" in doc


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reads_are_copies():
    store = MemoryDocumentStore()
    await store.set("users", "u1", {"followers": ["a"]})

    doc = await store.get("users", "u1")
    doc["followers"].append("b")

    assert (await store.get("users", "u1"))["followers"] == ["a"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_with_existing_id_fails():
    store = MemoryDocumentStore()
    await store.create("users", {"a": 1}, doc_id="u1")

    with pytest.raises(StoreWriteError):
        await store.create("users", {"a": 2}, doc_id="u1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_missing_document_raises_not_found():
    store = MemoryDocumentStore()

    with pytest.raises(NotFoundError):
        await store.update("users", "ghost", {"bio": "x"})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_if_writes_only_while_expected_fields_hold():
    store = MemoryDocumentStore()
    await store.set("media", "m1", {"status": "pending", "stats": {"views": 1}})

    await store.update_if("media", "m1", {"status": "pending"}, {"status": "approved"})
    with pytest.raises(WriteConflictError):
        await store.update_if("media", "m1", {"status": "pending"}, {"status": "rejected"})
    with pytest.raises(WriteConflictError):
        await store.update_if("media", "m1", {"stats.views": 2}, {"status": "rejected"})

    assert (await store.get("media", "m1"))["status"] == "approved"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_array_union_skips_duplicates_and_remove_drops_all():
    store = MemoryDocumentStore()
    await store.set("media", "m1", {"likes": ["u1"]})

    await store.array_union("media", "m1", "likes", "u1", "u2")
    assert (await store.get("media", "m1"))["likes"] == ["u1", "u2"]

    await store.array_remove("media", "m1", "likes", "u1")
    assert (await store.get("media", "m1"))["likes"] == ["u2"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_subscribe_delivers_initial_and_full_snapshots():
    store = MemoryDocumentStore()
    await store.create("media", {"userId": "u1"})
    snapshots = []

    subscription = await store.subscribe(
        "media", QuerySpec().where("userId", "==", "u1"), snapshots.append
    )
    await store.create("media", {"userId": "u2"})
    await store.create("media", {"userId": "u1"})

    assert [len(s) for s in snapshots] == [1, 1, 2]
    assert subscription.deliveries == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_subscribe_document_reports_absence_then_presence():
    store = MemoryDocumentStore()
    seen = []

    await store.subscribe_document("users", "u1", seen.append)
    await store.set("users", "u1", {"bio": "hi"})
    await store.delete("users", "u1")

    assert seen[0] is None
    assert seen[1]["bio"] == "hi"
    assert seen[2] is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_close_cancels_every_subscription():
    store = MemoryDocumentStore()
    first = await store.subscribe("media", None, lambda _: None)
    second = await store.subscribe("users", None, lambda _: None)

    await store.close()

    assert not first.active and not second.active
    assert store.hub.active_count() == 0
