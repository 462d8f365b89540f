"""
Profile Sync Engine.

Keeps the signed-in athlete's profile and media list in memory, fed by live
subscriptions that follow the auth session:

- sign-in opens the profile and own-media subscriptions for that user;
- a different user signing in rebinds both to the new id;
- sign-out cancels both and clears the cached state.

Every profile snapshot goes through ``decode_profile``. Repairs it reports
are written back in a background task; a failed write-back is logged and
the repaired profile is used anyway. A snapshot that cannot be decoded is
logged and the previous profile is kept.

This is client-side state for a Python client running in-process against a
DocumentStore, such as an app shell or admin tooling. The HTTP
routers are stateless and do not use it.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from libs.auth.models import Identity
from libs.auth.session import AuthSession
from libs.common.errors import AppError, AuthError, Err, Ok, Result, SnapshotParseError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec, apply_update
from libs.db.store import DocumentStore
from libs.db.subscriptions import Snapshot, SubscriptionScope
from services.media_service.models import MEDIA_COLLECTION, MediaItem
from services.media_service.services.feed import decode_media, newest_first
from services.members_service.models import PROFILES_COLLECTION, UserProfile
from services.members_service.services.members import flatten_update
from services.members_service.services.network import set_follow
from services.members_service.services.profiles import decode_profile, validate_profile_update

logger = get_logger(__name__)

StateListener = Callable[["ProfileSyncEngine"], Union[None, Awaitable[None]]]

PROFILE = "profile"
MEDIA = "media"


class ProfileSyncEngine:
    def __init__(
        self,
        store: DocumentStore,
        auth_session: AuthSession,
        default_bio: Optional[str] = None,
    ):
        self.store = store
        self.auth_session = auth_session
        self.default_bio = default_bio
        self.scope = SubscriptionScope("profile-sync")

        self.user_id: Optional[str] = None
        self.current_profile: Optional[UserProfile] = None
        self.media_items: list[MediaItem] = []
        self.last_error: Optional[AppError] = None

        self._listeners: list[StateListener] = []
        self._write_backs: set[asyncio.Task] = set()
        self._unsubscribe_auth: Optional[Callable[[], None]] = None

    async def start(self) -> None:
        """Start following the auth session. Call once."""
        self._unsubscribe_auth = await self.auth_session.on_auth_state_change(
            self._on_identity
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Observe state changes; returns a function that stops observing."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(self)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Profile state listener failed")

    async def _on_identity(self, identity: Optional[Identity]) -> None:
        if identity is None:
            await self._teardown()
            return

        user_id = identity.user_id
        if user_id != self.user_id:
            self.current_profile = None
            self.media_items = []
        self.user_id = user_id

        await self.scope.rebind(
            PROFILE,
            user_id,
            lambda: self.store.subscribe_document(
                PROFILES_COLLECTION,
                user_id,
                lambda doc: self._on_profile_snapshot(user_id, doc),
            ),
        )
        await self.scope.rebind(
            MEDIA,
            user_id,
            lambda: self.store.subscribe(
                MEDIA_COLLECTION,
                QuerySpec().where("userId", "==", user_id),
                lambda snapshot: self._on_media_snapshot(user_id, snapshot),
            ),
        )

    async def _teardown(self) -> None:
        self.scope.close_all()
        self.user_id = None
        self.current_profile = None
        self.media_items = []
        self.last_error = None
        await self._emit()

    async def _on_profile_snapshot(self, user_id: str, doc: Optional[dict[str, Any]]) -> None:
        if user_id != self.user_id:
            return
        if doc is None:
            # Sign-up writes the profile right after the account; wait for it.
            return

        try:
            decoded = decode_profile(user_id, doc, self.default_bio)
        except SnapshotParseError as e:
            logger.warning(f"Keeping previous profile for {user_id}: {e.message}")
            self.last_error = e
            await self._emit()
            return

        if decoded.needs_migration:
            self._schedule_write_back(user_id, decoded.repairs)
        self.current_profile = decoded.profile
        self.last_error = None
        await self._emit()

    async def _on_media_snapshot(self, user_id: str, snapshot: Snapshot) -> None:
        if user_id != self.user_id:
            return
        self.media_items = newest_first(decode_media(snapshot))
        await self._emit()

    def _schedule_write_back(self, user_id: str, repairs: dict[str, Any]) -> None:
        task = asyncio.create_task(self._write_back(user_id, repairs))
        self._write_backs.add(task)
        task.add_done_callback(self._write_backs.discard)

    async def _write_back(self, user_id: str, repairs: dict[str, Any]) -> None:
        try:
            await self.store.update(PROFILES_COLLECTION, user_id, repairs)
            logger.info(f"Migrated legacy profile {user_id}: {sorted(repairs)}")
        except AppError as e:
            logger.warning(f"Profile migration for {user_id} was not saved: {e.message}")

    async def flush(self) -> None:
        """Wait for scheduled write-backs to finish."""
        while self._write_backs:
            await asyncio.gather(*list(self._write_backs))

    def _require_profile(self) -> UserProfile:
        if self.current_profile is None or self.user_id is None:
            raise AuthError("No signed-in profile")
        return self.current_profile

    async def update_profile(self, fields: dict[str, Any]) -> Result[UserProfile]:
        """Write the fields, then replace the local copy.

        The next snapshot wins over the local copy if another writer got
        there in between.
        """
        try:
            profile = self._require_profile()
            validate_profile_update(fields)
            flat = flatten_update(fields)
            await self.store.update(PROFILES_COLLECTION, profile.id, flat)
        except AppError as e:
            logger.warning(f"Profile update failed: {e.message}")
            return Err(e)

        base = (self.current_profile or profile).model_dump(by_alias=True)
        self.current_profile = UserProfile.model_validate(apply_update(base, flat))
        await self._emit()
        return Ok(self.current_profile)

    async def toggle_follow(self, target_id: str) -> Result[bool]:
        """Follow or unfollow; applied locally first and reverted if the write fails."""
        try:
            profile = self._require_profile()
        except AppError as e:
            return Err(e)

        was_following = target_id in profile.following
        previous_following = list(profile.following)
        if was_following:
            following = [uid for uid in profile.following if uid != target_id]
        else:
            following = [*profile.following, target_id]
        self.current_profile = profile.model_copy(update={"following": following})
        await self._emit()

        try:
            await set_follow(self.store, profile.id, target_id, follow=not was_following)
        except AppError as e:
            logger.warning(f"Follow change for {target_id} failed, reverting: {e.message}")
            if self.current_profile is not None:
                self.current_profile = self.current_profile.model_copy(
                    update={"following": previous_following}
                )
            await self._emit()
            return Err(e)
        return Ok(not was_following)

    async def close(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        self.scope.close_all()
        await self.flush()
        self.user_id = None
        self.current_profile = None
        self.media_items = []
