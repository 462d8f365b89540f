"""Follow graph and athlete directory."""

from typing import Optional

from libs.common.errors import NotFoundError, SnapshotParseError, ValidationError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec
from libs.db.store import DocumentStore
from services.communications_service.models import NotificationType
from services.communications_service.services.notifications import notify_safely
from services.members_service.models import PROFILES_COLLECTION, Role, UserProfile
from services.members_service.services.profiles import decode_profile

logger = get_logger(__name__)


async def set_follow(
    store: DocumentStore, follower_id: str, target_id: str, follow: bool
) -> None:
    """Add or remove the follower -> target edge on both profile documents."""
    if follower_id == target_id:
        raise ValidationError("You cannot follow yourself", field="userId")

    target = await store.get(PROFILES_COLLECTION, target_id)
    if target is None:
        raise NotFoundError("Athlete not found")

    if follow:
        await store.array_union(PROFILES_COLLECTION, follower_id, "following", target_id)
        await store.array_union(PROFILES_COLLECTION, target_id, "followers", follower_id)
        follower = await store.get(PROFILES_COLLECTION, follower_id) or {}
        name = follower.get("fullName") or "Someone"
        await notify_safely(
            store,
            target_id,
            name,
            f"{name} started following you",
            type=NotificationType.SOCIAL,
        )
    else:
        await store.array_remove(PROFILES_COLLECTION, follower_id, "following", target_id)
        await store.array_remove(PROFILES_COLLECTION, target_id, "followers", follower_id)
    logger.info(f"{follower_id} {'followed' if follow else 'unfollowed'} {target_id}")


async def toggle_follow(store: DocumentStore, follower_id: str, target_id: str) -> bool:
    """Flip the edge based on the follower's stored list. Returns the new state."""
    follower = await store.get(PROFILES_COLLECTION, follower_id)
    if follower is None:
        raise NotFoundError("Profile not found")
    following = target_id in (follower.get("following") or [])
    await set_follow(store, follower_id, target_id, follow=not following)
    return not following


def _matches_search(profile: UserProfile, search: str) -> bool:
    needle = search.lower()
    return any(
        needle in (value or "").lower()
        for value in (profile.full_name, profile.position, profile.club)
    )


async def search_athletes(
    store: DocumentStore,
    search: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> list[UserProfile]:
    docs = await store.query(
        PROFILES_COLLECTION, QuerySpec().where("role", "==", Role.ATHLETE.value)
    )
    profiles = []
    for doc in docs:
        if doc["id"] == exclude_id:
            continue
        try:
            profile = decode_profile(doc["id"], doc).profile
        except SnapshotParseError as e:
            logger.warning(f"Skipping profile in directory: {e.message}")
            continue
        if search and not _matches_search(profile, search.strip()):
            continue
        profiles.append(profile)
    return sorted(profiles, key=lambda p: p.full_name.lower())
