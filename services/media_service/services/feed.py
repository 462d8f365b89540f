"""
Feed / query layer over media documents.

Every feed is a live query whose full result set is re-delivered on each
change. Results are always sorted newest first here rather than by the
store, because a filtered query (one athlete's items) cannot rely on the
store ordering without a composite index.
"""

import enum
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from libs.common.config import get_settings
from libs.common.datetime_utils import parse_timestamp
from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec
from libs.db.store import DocumentStore
from libs.db.subscriptions import Snapshot, Subscription
from services.media_service.models import (
    HIGHLIGHT_STATUSES,
    MEDIA_COLLECTION,
    MediaItem,
)

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

FeedCallback = Callable[[list[MediaItem]], Union[None, Awaitable[None]]]


class FeedScope(str, enum.Enum):
    GLOBAL = "global"
    USER = "user"


def decode_media(snapshot: Snapshot) -> list[MediaItem]:
    """Decode a snapshot, skipping (and logging) documents that do not parse."""
    items = []
    for doc in snapshot:
        try:
            items.append(MediaItem.from_document(doc))
        except PydanticValidationError as e:
            logger.warning(
                f"Skipping malformed media document {doc.get('id')}: {e.error_count()} errors"
            )
    return items


def newest_first(items: list[MediaItem]) -> list[MediaItem]:
    return sorted(
        items,
        key=lambda item: parse_timestamp(item.date) or _EPOCH,
        reverse=True,
    )


def resolve_limit(limit: Optional[int]) -> int:
    settings = get_settings()
    if limit is None:
        return settings.FEED_DEFAULT_LIMIT
    if limit < 1:
        raise ValidationError("limit must be positive", field="limit")
    return min(limit, settings.FEED_MAX_LIMIT)


def feed_query(scope: FeedScope, user_id: Optional[str], limit: Optional[int]) -> QuerySpec:
    """
    Store query for a feed.

    A user feed is fetched whole and unordered; its limit is applied after
    the client-side sort by ``present_feed``.
    """
    scope = FeedScope(scope)
    if scope == FeedScope.GLOBAL:
        return QuerySpec().ordered("date", descending=True).limited(resolve_limit(limit))
    if not user_id:
        raise ValidationError("A user feed needs a user id", field="user_id")
    return QuerySpec().where("userId", "==", user_id)


def present_feed(snapshot: Snapshot, limit: int) -> list[MediaItem]:
    return newest_first(decode_media(snapshot))[:limit]


@dataclass
class FeedSubscription:
    """Current items of a live feed plus the handle that stops it."""

    items: list[MediaItem] = field(default_factory=list)
    subscription: Optional[Subscription] = None

    def cancel(self) -> None:
        if self.subscription is not None:
            self.subscription.cancel()

    @property
    def active(self) -> bool:
        return self.subscription is not None and self.subscription.active


class FeedService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def subscribe_feed(
        self,
        scope: FeedScope = FeedScope.GLOBAL,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
        callback: Optional[FeedCallback] = None,
    ) -> FeedSubscription:
        feed = FeedSubscription()
        spec = feed_query(scope, user_id, limit)
        cap = resolve_limit(limit)

        async def _on_snapshot(snapshot: Snapshot) -> None:
            feed.items = present_feed(snapshot, cap)
            if callback is not None:
                result = callback(feed.items)
                if inspect.isawaitable(result):
                    await result

        feed.subscription = await self.store.subscribe(MEDIA_COLLECTION, spec, _on_snapshot)
        return feed

    async def list_feed(
        self,
        scope: FeedScope = FeedScope.GLOBAL,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[MediaItem]:
        snapshot = await self.store.query(MEDIA_COLLECTION, feed_query(scope, user_id, limit))
        return present_feed(snapshot, resolve_limit(limit))

    async def highlights(self, user_id: str) -> list[MediaItem]:
        """Approved and featured items of one athlete."""
        snapshot = await self.store.query(
            MEDIA_COLLECTION,
            QuerySpec()
            .where("userId", "==", user_id)
            .where("status", "in", list(HIGHLIGHT_STATUSES)),
        )
        return newest_first(decode_media(snapshot))

    async def get_item(self, media_id: str) -> MediaItem:
        doc = await self.store.get(MEDIA_COLLECTION, media_id)
        if doc is None:
            raise NotFoundError("Media item not found")
        return MediaItem.from_document(doc)

    async def toggle_like(self, media_id: str, user_id: str) -> MediaItem:
        """Add or remove ``user_id`` from the likes, based on current membership."""
        item = await self.get_item(media_id)
        if user_id in item.likes:
            await self.store.array_remove(MEDIA_COLLECTION, media_id, "likes", user_id)
        else:
            await self.store.array_union(MEDIA_COLLECTION, media_id, "likes", user_id)
        return await self.get_item(media_id)


def like_summary(item: MediaItem, user_id: str) -> dict[str, Any]:
    return {"id": item.id, "likes": len(item.likes), "liked": user_id in item.likes}
