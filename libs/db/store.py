"""Document store interface and the in-process implementation.

Documents are plain dicts keyed by string ids inside named collections.
Reads return copies with the id injected under ``"id"``; the id is never
persisted inside the document body.
"""

import copy
import uuid
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Union

from libs.common.datetime_utils import utc_now_iso
from libs.common.errors import NotFoundError, StoreWriteError, WriteConflictError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec, apply_query, apply_update, lookup
from libs.db.subscriptions import Snapshot, Subscription, SubscriptionHub

logger = get_logger(__name__)

DocumentCallback = Callable[[Optional[dict[str, Any]]], Union[None, Awaitable[None]]]


def new_document_id() -> str:
    return uuid.uuid4().hex


def with_created_at(data: dict[str, Any]) -> dict[str, Any]:
    payload = {k: v for k, v in data.items() if k != "id"}
    payload.setdefault("createdAt", utc_now_iso())
    return payload


def ensure_expected(
    collection: str, doc_id: str, data: dict[str, Any], expected: dict[str, Any]
) -> None:
    for path, value in expected.items():
        if lookup(data, path) != value:
            raise WriteConflictError(
                f"{collection}/{doc_id} changed: {path} is no longer {value!r}"
            )


class DocumentStore(ABC):
    """Persistent multi-collection document store with live queries."""

    def __init__(self, hub: Optional[SubscriptionHub] = None):
        self.hub = hub or SubscriptionHub()

    @abstractmethod
    async def create(
        self, collection: str, data: dict[str, Any], doc_id: Optional[str] = None
    ) -> str:
        """Insert a new document and return its id."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or fully replace the document with the given id."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document (dotted keys allowed)."""

    @abstractmethod
    async def update_if(
        self,
        collection: str,
        doc_id: str,
        expected: dict[str, Any],
        fields: dict[str, Any],
    ) -> None:
        """
        Like ``update``, but only while every ``expected`` field still holds
        its expected value. Raises WriteConflictError otherwise.
        """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    async def query(
        self, collection: str, spec: Optional[QuerySpec] = None
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    async def array_union(
        self, collection: str, doc_id: str, field: str, *values: Any
    ) -> None:
        """Append values to an array field, skipping ones already present."""

    @abstractmethod
    async def array_remove(
        self, collection: str, doc_id: str, field: str, *values: Any
    ) -> None:
        """Remove every occurrence of the values from an array field."""

    async def close(self) -> None:
        self.hub.cancel_all()

    async def subscribe(
        self,
        collection: str,
        spec: Optional[QuerySpec],
        callback: Callable[[Snapshot], Union[None, Awaitable[None]]],
    ) -> Subscription:
        """Register a live query; the current result set is delivered at once."""
        spec = spec or QuerySpec()
        subscription = self.hub.register(collection, spec, callback)
        await subscription.deliver(await self.query(collection, spec))
        return subscription

    async def subscribe_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Subscription:
        """Live view of one document; the callback gets the document or None."""

        def _unwrap(snapshot: Snapshot):
            return callback(snapshot[0] if snapshot else None)

        return await self.subscribe(
            collection, QuerySpec().where("id", "==", doc_id), _unwrap
        )

    async def _notify(self, collection: str) -> None:
        await self.hub.publish(collection, partial(self.query, collection))


class MemoryDocumentStore(DocumentStore):
    """Document store kept in process memory.

    Used for local development and tests. Every call copies documents in and
    out so callers can never mutate stored state by reference.
    """

    def __init__(self, hub: Optional[SubscriptionHub] = None):
        super().__init__(hub)
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def _require(self, collection: str, doc_id: str) -> dict[str, Any]:
        data = self._collection(collection).get(doc_id)
        if data is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist")
        return data

    async def create(
        self, collection: str, data: dict[str, Any], doc_id: Optional[str] = None
    ) -> str:
        doc_id = doc_id or new_document_id()
        docs = self._collection(collection)
        if doc_id in docs:
            raise StoreWriteError(f"{collection}/{doc_id} already exists")
        docs[doc_id] = copy.deepcopy(with_created_at(data))
        await self._notify(collection)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(with_created_at(data))
        await self._notify(collection)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        current = self._require(collection, doc_id)
        self._collection(collection)[doc_id] = copy.deepcopy(apply_update(current, fields))
        await self._notify(collection)

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        expected: dict[str, Any],
        fields: dict[str, Any],
    ) -> None:
        ensure_expected(collection, doc_id, self._require(collection, doc_id), expected)
        await self.update(collection, doc_id, fields)

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        data = self._collection(collection).get(doc_id)
        if data is None:
            return None
        return {**copy.deepcopy(data), "id": doc_id}

    async def query(
        self, collection: str, spec: Optional[QuerySpec] = None
    ) -> list[dict[str, Any]]:
        docs = [
            {**copy.deepcopy(data), "id": doc_id}
            for doc_id, data in self._collection(collection).items()
        ]
        return apply_query(docs, spec or QuerySpec())

    async def delete(self, collection: str, doc_id: str) -> None:
        if self._collection(collection).pop(doc_id, None) is not None:
            await self._notify(collection)

    async def array_union(
        self, collection: str, doc_id: str, field: str, *values: Any
    ) -> None:
        current = self._require(collection, doc_id)
        items = list(current.get(field) or [])
        for value in values:
            if value not in items:
                items.append(value)
        current[field] = items
        await self._notify(collection)

    async def array_remove(
        self, collection: str, doc_id: str, field: str, *values: Any
    ) -> None:
        current = self._require(collection, doc_id)
        current[field] = [v for v in (current.get(field) or []) if v not in values]
        await self._notify(collection)


def build_document_store(settings) -> DocumentStore:
    """Create the store selected by DOCUMENT_STORE_BACKEND."""
    if settings.DOCUMENT_STORE_BACKEND == "memory":
        logger.info("Using in-memory document store")
        return MemoryDocumentStore()
    if settings.DOCUMENT_STORE_BACKEND == "postgres":
        from libs.db.config import get_session_factory
        from libs.db.sql_store import SqlDocumentStore

        logger.info("Using PostgreSQL document store")
        return SqlDocumentStore(get_session_factory())
    raise ValueError(f"Unknown document store backend: {settings.DOCUMENT_STORE_BACKEND}")
