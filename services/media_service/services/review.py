"""
Media review workflow.

Athletes submit media, which waits in ``pending`` until an admin approves
or rejects it. Approved media may later be promoted to ``featured``. Every
input check runs before the store is touched, so a rejected request never
leaves a half-written item behind.

Ratings: the persisted ``stats.ratingAvg`` on the profile is the system of
record. ``aggregate_rating`` computes the live mean of coach ratings, which
an admin can commit with ``commit_rating_average``.
"""

import math
from typing import Any, Iterable, Optional

from libs.common.datetime_utils import utc_now_iso
from libs.common.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    WriteConflictError,
)
from libs.common.logging import get_logger
from libs.db.query import QuerySpec
from libs.db.store import DocumentStore
from services.communications_service.models import NotificationType
from services.communications_service.services.notifications import notify_safely
from services.media_service.models import (
    MEDIA_COLLECTION,
    MediaCategory,
    MediaItem,
    MediaStatus,
    MediaType,
    ReviewDecision,
    ensure_transition,
)
from services.media_service.services.feed import decode_media, newest_first
from services.members_service.models import PROFILES_COLLECTION

logger = get_logger(__name__)

MIN_RATING = 0
MAX_RATING = 10
REVIEWER_NAME = "Coach"

_DATA_URL_PREFIX = {
    MediaType.VIDEO: "data:video/",
    MediaType.PHOTO: "data:image/",
}


def validate_rating(rating: Optional[float]) -> Optional[float]:
    if rating is None:
        return None
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or math.isnan(rating):
        raise ValidationError("Rating must be a number", field="rating")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}", field="rating"
        )
    return float(rating)


def validate_submission(owner_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Check a submission and return the normalised fields."""
    if not owner_id:
        raise ValidationError("Media must have an owner", field="userId")

    title = (fields.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")

    try:
        media_type = MediaType(fields.get("type"))
    except ValueError:
        raise ValidationError("Type must be video or photo", field="type")

    try:
        category = MediaCategory(fields.get("category"))
    except ValueError:
        raise ValidationError(
            f"Category must be one of {', '.join(c.value for c in MediaCategory)}",
            field="category",
        )

    asset = fields.get("thumbnailUrl") or ""
    if not asset.strip():
        raise ValidationError("A media file is required", field="thumbnailUrl")
    if asset.startswith("data:") and not asset.startswith(_DATA_URL_PREFIX[media_type]):
        raise ValidationError(
            f"Uploaded file does not match media type {media_type.value}",
            field="thumbnailUrl",
        )

    duration = fields.get("duration")
    if media_type == MediaType.VIDEO:
        duration = duration or "00:00"

    return {
        "title": title,
        "type": media_type.value,
        "category": category.value,
        "thumbnailUrl": asset,
        "duration": duration,
    }


async def submit_media(store: DocumentStore, owner_id: str, fields: dict[str, Any]) -> MediaItem:
    """Create a pending media item for ``owner_id``."""
    clean = validate_submission(owner_id, fields)

    owner = await store.get(PROFILES_COLLECTION, owner_id) or {}
    now = utc_now_iso()
    data = {
        **clean,
        "userId": owner_id,
        "status": MediaStatus.PENDING.value,
        "date": now,
        "createdAt": now,
        "views": 0,
        "likes": [],
        "commentsCount": 0,
        "authorName": owner.get("fullName") or "Athlete",
        "authorAvatar": owner.get("avatarUrl") or "",
    }
    media_id = await store.create(MEDIA_COLLECTION, data)
    logger.info(f"Media {media_id} submitted by {owner_id}")
    return MediaItem.from_document({**data, "id": media_id})


async def pending_media(store: DocumentStore) -> list[MediaItem]:
    docs = await store.query(
        MEDIA_COLLECTION, QuerySpec().where("status", "==", MediaStatus.PENDING.value)
    )
    return newest_first(decode_media(docs))


async def _load(store: DocumentStore, media_id: str) -> MediaItem:
    doc = await store.get(MEDIA_COLLECTION, media_id)
    if doc is None:
        raise NotFoundError("Media item not found")
    return MediaItem.from_document(doc)


async def _apply_transition(
    store: DocumentStore, item: MediaItem, target: str, fields: dict[str, Any]
) -> bool:
    """Write the new status only if the item still has the status it was read with.

    Returns False when another reviewer already moved it to ``target``.
    """
    try:
        await store.update_if(
            MEDIA_COLLECTION, item.id, {"status": item.status}, {**fields, "status": target}
        )
    except WriteConflictError:
        current = await _load(store, item.id)
        if current.status == target:
            return False
        raise InvalidTransitionError(
            f"Media moved to {current.status} while it was being reviewed", field="status"
        )
    return True


async def review_media(
    store: DocumentStore,
    media_id: str,
    decision: str,
    rating: Optional[float] = None,
    feedback: Optional[str] = None,
) -> MediaItem:
    """Approve or reject a pending item.

    Reviewing again with the decision already recorded returns the item
    unchanged; any other decision on a reviewed item is an
    InvalidTransitionError.
    """
    try:
        decision = ReviewDecision(decision).value
    except ValueError:
        raise ValidationError("Decision must be approved or rejected", field="decision")
    rating = validate_rating(rating)

    item = await _load(store, media_id)
    if item.status == decision:
        return item
    ensure_transition(item.status, decision)

    fields: dict[str, Any] = {
        "coachFeedback": (feedback or "").strip(),
        "reviewedAt": utc_now_iso(),
    }
    if decision == ReviewDecision.APPROVED.value:
        fields["coachRating"] = rating
    if not await _apply_transition(store, item, decision, fields):
        return await _load(store, media_id)
    logger.info(f"Media {media_id} reviewed: {decision}")

    if decision == ReviewDecision.APPROVED.value:
        message = f'Your {item.type} "{item.title}" was approved'
        if rating is not None:
            message += f" with a rating of {rating:g}/10"
        kind = NotificationType.FEEDBACK
    else:
        message = f'Your {item.type} "{item.title}" was not approved'
        kind = NotificationType.SYSTEM
    await notify_safely(
        store, item.user_id, REVIEWER_NAME, message, type=kind, link_to_media_id=media_id
    )

    return await _load(store, media_id)


async def promote_media(store: DocumentStore, media_id: str) -> MediaItem:
    item = await _load(store, media_id)
    if item.status == MediaStatus.FEATURED.value:
        return item
    ensure_transition(item.status, MediaStatus.FEATURED.value)
    if not await _apply_transition(store, item, MediaStatus.FEATURED.value, {}):
        return await _load(store, media_id)
    await notify_safely(
        store,
        item.user_id,
        REVIEWER_NAME,
        f'"{item.title}" is now featured',
        type=NotificationType.FEEDBACK,
        link_to_media_id=media_id,
    )
    return await _load(store, media_id)


def aggregate_rating(user_id: str, media: Iterable[MediaItem]) -> float:
    """Mean coach rating of the athlete's rated items; 0.0 when none are rated."""
    ratings = [
        item.coach_rating
        for item in media
        if item.user_id == user_id and item.coach_rating is not None
    ]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


async def user_media(store: DocumentStore, user_id: str) -> list[MediaItem]:
    return decode_media(
        await store.query(MEDIA_COLLECTION, QuerySpec().where("userId", "==", user_id))
    )


async def rating_summary(store: DocumentStore, user_id: str) -> dict[str, Any]:
    """Both views of an athlete's rating, side by side."""
    profile = await store.get(PROFILES_COLLECTION, user_id)
    if profile is None:
        raise NotFoundError("Athlete not found")
    media = await user_media(store, user_id)
    return {
        "userId": user_id,
        "persisted": float((profile.get("stats") or {}).get("ratingAvg") or 0),
        "computed": round(aggregate_rating(user_id, media), 2),
        "ratedItems": sum(1 for item in media if item.is_rated),
    }


async def commit_rating_average(store: DocumentStore, user_id: str) -> float:
    """Recompute the mean from the store and persist it as stats.ratingAvg."""
    if await store.get(PROFILES_COLLECTION, user_id) is None:
        raise NotFoundError("Athlete not found")
    average = round(aggregate_rating(user_id, await user_media(store, user_id)), 2)
    await store.update(PROFILES_COLLECTION, user_id, {"stats.ratingAvg": average})
    logger.info(f"Committed ratingAvg={average} for {user_id}")
    return average
