"""Live query subscriptions.

A subscription is a query plus a callback. The hub re-runs every active
query on a collection after each committed write to it and hands the full
result set to the callback. There is no diffing: subscribers always render
whole lists.
"""

import inspect
import itertools
from collections import defaultdict
from typing import Any, Awaitable, Callable, Hashable, Optional, Union

from libs.common.errors import StoreReadError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec

logger = get_logger(__name__)

Snapshot = list[dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], Union[None, Awaitable[None]]]
QueryRunner = Callable[[QuerySpec], Awaitable[Snapshot]]

_ids = itertools.count(1)


class Subscription:
    """Handle for one live query. Cancelling is idempotent."""

    def __init__(
        self,
        hub: "SubscriptionHub",
        collection: str,
        spec: QuerySpec,
        callback: SnapshotCallback,
    ):
        self.id = next(_ids)
        self.collection = collection
        self.spec = spec
        self._hub = hub
        self._callback = callback
        self.active = True
        self.deliveries = 0

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._hub._remove(self)

    async def deliver(self, snapshot: Snapshot) -> None:
        # Checked again here: a callback earlier in the same publish pass may
        # have cancelled this subscription.
        if not self.active:
            return
        self.deliveries += 1
        try:
            result = self._callback(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                f"Subscriber callback failed for {self.collection} (subscription {self.id})"
            )

    def __repr__(self):
        state = "active" if self.active else "cancelled"
        return f"<Subscription {self.id} {self.collection} {state}>"


class SubscriptionHub:
    """Registry of live queries, grouped by collection."""

    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)
        self._publishing: set[str] = set()
        self._dirty: set[str] = set()

    def register(
        self, collection: str, spec: QuerySpec, callback: SnapshotCallback
    ) -> Subscription:
        subscription = Subscription(self, collection, spec, callback)
        self._subscriptions[collection].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.collection, [])
        if subscription in subs:
            subs.remove(subscription)

    def active_count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self._subscriptions.get(collection, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    async def publish(self, collection: str, run_query: QueryRunner) -> None:
        """Re-deliver snapshots to every subscriber of ``collection``.

        Writes that land while a pass is running mark the collection dirty
        and the pass repeats, so subscribers always end on the latest state.
        """
        if collection in self._publishing:
            self._dirty.add(collection)
            return

        self._publishing.add(collection)
        try:
            while True:
                self._dirty.discard(collection)
                for subscription in list(self._subscriptions.get(collection, [])):
                    if not subscription.active:
                        continue
                    try:
                        snapshot = await run_query(subscription.spec)
                    except StoreReadError:
                        logger.exception(
                            f"Could not refresh subscription {subscription.id} on {collection}"
                        )
                        continue
                    await subscription.deliver(snapshot)
                if collection not in self._dirty:
                    break
        finally:
            self._publishing.discard(collection)

    def cancel_all(self) -> None:
        for subs in list(self._subscriptions.values()):
            for subscription in list(subs):
                subscription.cancel()


class SubscriptionScope:
    """Named subscription handles owned by a single context.

    Each handle may carry a key (e.g. the signed-in user id). Rebinding with
    the same key keeps the live handle; a different key cancels it and opens
    a new one.
    """

    def __init__(self, name: str):
        self.name = name
        self._handles: dict[str, Subscription] = {}
        self._keys: dict[str, Hashable] = {}

    def open(self, name: str, subscription: Subscription, key: Hashable = None) -> Subscription:
        self.close(name)
        self._handles[name] = subscription
        self._keys[name] = key
        return subscription

    async def rebind(
        self,
        name: str,
        key: Hashable,
        factory: Callable[[], Awaitable[Subscription]],
    ) -> Subscription:
        current = self._handles.get(name)
        if current is not None and current.active and self._keys.get(name) == key:
            return current
        self.close(name)
        return self.open(name, await factory(), key)

    def get(self, name: str) -> Optional[Subscription]:
        return self._handles.get(name)

    def key(self, name: str) -> Hashable:
        return self._keys.get(name)

    def close(self, name: str) -> None:
        subscription = self._handles.pop(name, None)
        self._keys.pop(name, None)
        if subscription is not None:
            subscription.cancel()

    def close_all(self) -> None:
        for name in list(self._handles):
            self.close(name)

    @property
    def names(self) -> list[str]:
        return list(self._handles)

    def __len__(self) -> int:
        return len(self._handles)
