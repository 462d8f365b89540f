"""Comments on media items."""

import inspect
from typing import Awaitable, Callable, Union

from pydantic import ValidationError as PydanticValidationError

from libs.common.datetime_utils import utc_now_iso
from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec, sort_documents
from libs.db.store import DocumentStore
from libs.db.subscriptions import Snapshot, Subscription
from services.media_service.models import COMMENTS_COLLECTION, MEDIA_COLLECTION, Comment
from services.members_service.models import PROFILES_COLLECTION

logger = get_logger(__name__)

MAX_COMMENT_LENGTH = 1000

CommentsCallback = Callable[[list[Comment]], Union[None, Awaitable[None]]]


def decode_comments(snapshot: Snapshot) -> list[Comment]:
    """Oldest first; malformed documents are skipped."""
    comments = []
    for doc in sort_documents(snapshot, "createdAt"):
        try:
            comments.append(Comment.from_document(doc))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed comment {doc.get('id')}")
    return comments


async def add_comment(store: DocumentStore, media_id: str, author_id: str, text: str) -> Comment:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty", field="text")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationError("Comment is too long", field="text")

    media = await store.get(MEDIA_COLLECTION, media_id)
    if media is None:
        raise NotFoundError("Media item not found")
    author = await store.get(PROFILES_COLLECTION, author_id) or {}

    data = {
        "mediaId": media_id,
        "userId": author_id,
        "text": text,
        "authorName": author.get("fullName") or "Athlete",
        "authorAvatar": author.get("avatarUrl") or "",
        "createdAt": utc_now_iso(),
    }
    comment_id = await store.create(COMMENTS_COLLECTION, data)

    # Read-modify-write: concurrent comments can undercount.
    await store.update(
        MEDIA_COLLECTION,
        media_id,
        {"commentsCount": int(media.get("commentsCount") or 0) + 1},
    )
    return Comment.from_document({**data, "id": comment_id})


async def list_comments(store: DocumentStore, media_id: str) -> list[Comment]:
    return decode_comments(
        await store.query(COMMENTS_COLLECTION, QuerySpec().where("mediaId", "==", media_id))
    )


async def subscribe_comments(
    store: DocumentStore, media_id: str, callback: CommentsCallback
) -> Subscription:
    async def _on_snapshot(snapshot: Snapshot) -> None:
        result = callback(decode_comments(snapshot))
        if inspect.isawaitable(result):
            await result

    return await store.subscribe(
        COMMENTS_COLLECTION, QuerySpec().where("mediaId", "==", media_id), _on_snapshot
    )
