"""
Admin-side live list of media awaiting review.

Reviewing removes the item from the list straight away. If the store write
fails the item goes back where it was, so the list never shows a state the
store does not have.

Part of the in-process client API, like the profile sync engine; the HTTP
admin routes call ``review_media`` directly instead.
"""

from typing import Optional

from libs.common.errors import AppError, Err, NotFoundError, Ok, Result
from libs.common.logging import get_logger
from libs.db.query import QuerySpec
from libs.db.store import DocumentStore
from libs.db.subscriptions import Snapshot, SubscriptionScope
from services.media_service.models import MEDIA_COLLECTION, MediaItem, MediaStatus
from services.media_service.services.feed import decode_media, newest_first
from services.media_service.services.review import review_media, validate_rating

logger = get_logger(__name__)


class ReviewQueue:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.items: list[MediaItem] = []
        self.scope = SubscriptionScope("review-queue")
        self._in_flight: set[str] = set()

    async def open(self) -> None:
        subscription = await self.store.subscribe(
            MEDIA_COLLECTION,
            QuerySpec().where("status", "==", MediaStatus.PENDING.value),
            self._on_snapshot,
        )
        self.scope.open("pending", subscription)

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        # Items with a review in flight stay hidden until the write settles.
        self.items = [
            item
            for item in newest_first(decode_media(snapshot))
            if item.id not in self._in_flight
        ]

    @property
    def count(self) -> int:
        return len(self.items)

    def _index_of(self, media_id: str) -> Optional[int]:
        for index, item in enumerate(self.items):
            if item.id == media_id:
                return index
        return None

    async def review(
        self,
        media_id: str,
        decision: str,
        rating: Optional[float] = None,
        feedback: Optional[str] = None,
    ) -> Result[MediaItem]:
        try:
            validate_rating(rating)
        except AppError as e:
            return Err(e)

        index = self._index_of(media_id)
        if index is None:
            return Err(NotFoundError("Media item is not waiting for review"))

        item = self.items.pop(index)
        self._in_flight.add(media_id)
        try:
            reviewed = await review_media(self.store, media_id, decision, rating, feedback)
        except AppError as e:
            logger.warning(f"Review of {media_id} failed, restoring it to the queue: {e.message}")
            if self._index_of(media_id) is None:
                self.items.insert(min(index, len(self.items)), item)
            return Err(e)
        finally:
            self._in_flight.discard(media_id)
        return Ok(reviewed)

    def close(self) -> None:
        self.scope.close_all()
        self.items = []
