"""Unit tests for the admin review queue and its optimistic removal."""

import pytest

from libs.common.errors import NotFoundError, StoreWriteError, ValidationError
from libs.db.store import MemoryDocumentStore
from services.media_service.models import MEDIA_COLLECTION
from services.media_service.services.review_queue import ReviewQueue
from tests.factories import MediaFactory, minutes_ago


class FailingReviewStore(MemoryDocumentStore):
    """Store whose media updates fail, as if the network dropped mid-review."""

    def __init__(self):
        super().__init__()
        self.fail_media_updates = False

    async def update(self, collection, doc_id, fields):
        if self.fail_media_updates and collection == MEDIA_COLLECTION:
            raise StoreWriteError("write failed")
        await super().update(collection, doc_id, fields)


async def _queue_with_items(store, count=3):
    ids = []
    for age in range(count):
        ids.append(
            await store.create(
                MEDIA_COLLECTION,
                MediaFactory.create(title=f"clip-{age}", date=minutes_ago(age + 1)),
            )
        )
    queue = ReviewQueue(store)
    await queue.open()
    return queue, ids


@pytest.mark.asyncio
@pytest.mark.unit
async def test_queue_lists_pending_newest_first_and_follows_store():
    store = MemoryDocumentStore()
    queue, ids = await _queue_with_items(store)

    assert [item.id for item in queue.items] == ids

    await store.create(MEDIA_COLLECTION, MediaFactory.create(status="approved"))
    assert queue.count == 3

    await store.create(MEDIA_COLLECTION, MediaFactory.create(title="fresh"))
    assert queue.items[0].title == "fresh"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_successful_review_removes_item():
    store = MemoryDocumentStore()
    queue, ids = await _queue_with_items(store)

    result = await queue.review(ids[1], "approved", rating=6)

    assert result.ok
    assert result.value.status == "approved"
    assert [item.id for item in queue.items] == [ids[0], ids[2]]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_write_restores_item_at_original_position():
    store = FailingReviewStore()
    queue, ids = await _queue_with_items(store)
    store.fail_media_updates = True

    result = await queue.review(ids[1], "approved", rating=6)

    assert not result.ok
    assert isinstance(result.error, StoreWriteError)
    assert [item.id for item in queue.items] == ids
    assert (await store.get(MEDIA_COLLECTION, ids[1]))["status"] == "pending"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalid_rating_never_touches_the_list():
    store = MemoryDocumentStore()
    queue, ids = await _queue_with_items(store)

    result = await queue.review(ids[0], "approved", rating=11)

    assert isinstance(result.error, ValidationError)
    assert [item.id for item in queue.items] == ids


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reviewing_item_not_in_queue():
    store = MemoryDocumentStore()
    queue, _ = await _queue_with_items(store, count=1)

    result = await queue.review("ghost", "rejected")

    assert isinstance(result.error, NotFoundError)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_close_cancels_subscription():
    store = MemoryDocumentStore()
    queue, _ = await _queue_with_items(store, count=1)

    queue.close()
    await store.create(MEDIA_COLLECTION, MediaFactory.create())

    assert queue.items == []
    assert store.hub.active_count(MEDIA_COLLECTION) == 0
