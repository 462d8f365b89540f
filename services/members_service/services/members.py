"""Reading and editing profile documents on behalf of the API."""

from typing import Any, Optional

from libs.auth.models import Credentials, Identity
from libs.common.errors import AppError, NotFoundError
from libs.common.logging import get_logger
from libs.db.store import DocumentStore
from services.members_service.models import PROFILES_COLLECTION, UserProfile
from services.members_service.services.profiles import (
    decode_profile,
    new_profile_document,
    validate_profile_update,
)

logger = get_logger(__name__)

# Blocks merged key by key so a partial edit keeps the other keys.
NESTED_BLOCKS = ("physical", "stats")


def flatten_update(fields: dict[str, Any]) -> dict[str, Any]:
    """{"physical": {"height": "180"}} -> {"physical.height": "180"}"""
    flat: dict[str, Any] = {}
    for key, value in fields.items():
        if key in NESTED_BLOCKS and isinstance(value, dict):
            for inner, inner_value in value.items():
                flat[f"{key}.{inner}"] = inner_value
        else:
            flat[key] = value
    return flat


async def load_profile(store: DocumentStore, user_id: str) -> UserProfile:
    """Read and decode a profile, writing back any repairs it needed."""
    doc = await store.get(PROFILES_COLLECTION, user_id)
    if doc is None:
        raise NotFoundError("Profile not found")
    decoded = decode_profile(user_id, doc)
    if decoded.needs_migration:
        logger.info(f"Repairing legacy profile {user_id}: {sorted(decoded.repairs)}")
        try:
            await store.update(PROFILES_COLLECTION, user_id, decoded.repairs)
        except AppError as e:
            logger.warning(f"Profile repair for {user_id} was not saved: {e.message}")
    return decoded.profile


async def update_profile(
    store: DocumentStore, user_id: str, fields: dict[str, Any], *, as_admin: bool = False
) -> UserProfile:
    validate_profile_update(fields, as_admin=as_admin)
    if await store.get(PROFILES_COLLECTION, user_id) is None:
        raise NotFoundError("Profile not found")
    if fields:
        await store.update(PROFILES_COLLECTION, user_id, flatten_update(fields))
    return await load_profile(store, user_id)


async def create_profile(
    store: DocumentStore, identity: Identity, full_name: Optional[str] = None
) -> UserProfile:
    """Write the placeholder profile for a new account, unless one exists."""
    existing = await store.get(PROFILES_COLLECTION, identity.user_id)
    if existing is None:
        await store.set(
            PROFILES_COLLECTION,
            identity.user_id,
            new_profile_document(identity.email, full_name),
        )
        logger.info(f"Created profile for {identity.user_id}")
    return await load_profile(store, identity.user_id)


def profile_creator(store: DocumentStore):
    """Sign-up hook for AuthSession: creates the profile for the new identity."""

    async def _after_sign_up(identity: Identity, credentials: Credentials) -> None:
        await create_profile(store, identity, credentials.full_name)

    return _after_sign_up
