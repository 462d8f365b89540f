"""PostgreSQL-backed document store.

Every document is one row of the ``documents`` table with its body in a JSONB
column. Filters and ordering are compiled to JSONB operators so the database
does the work; array mutations take a row lock so concurrent likes/follows
do not overwrite each other.
"""

from typing import Any, Optional

from sqlalchemy import and_, delete, literal, or_, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from libs.common.errors import NotFoundError, StoreReadError, StoreWriteError
from libs.common.logging import get_logger
from libs.db.base import Base, DocumentRecord
from libs.db.query import Filter, QuerySpec, apply_update
from libs.db.store import DocumentStore, ensure_expected, new_document_id, with_created_at
from libs.db.subscriptions import SubscriptionHub

logger = get_logger(__name__)


def _json_path(field: str):
    parts = tuple(field.split("."))
    return DocumentRecord.data[parts if len(parts) > 1 else parts[0]]


def _compile_filter(f: Filter):
    if f.field == "id":
        if f.op == "==":
            return DocumentRecord.id == str(f.value)
        if f.op == "!=":
            return DocumentRecord.id != str(f.value)
        if f.op == "in":
            return DocumentRecord.id.in_([str(v) for v in f.value])
        raise ValueError(f"Operator {f.op} is not supported on id")

    element = _json_path(f.field)
    if f.op == "==":
        return element == literal(f.value, JSONB)
    if f.op == "!=":
        return or_(element.is_(None), element != literal(f.value, JSONB))
    if f.op == "in":
        return or_(*[element == literal(v, JSONB) for v in f.value])
    if f.op == "array_contains":
        return element.contains([f.value])
    if f.op == ">=":
        return element >= literal(f.value, JSONB)
    return element <= literal(f.value, JSONB)


def _to_document(record: DocumentRecord) -> dict[str, Any]:
    return {**record.data, "id": record.id}


class SqlDocumentStore(DocumentStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hub: Optional[SubscriptionHub] = None,
    ):
        super().__init__(hub)
        self._session_factory = session_factory

    async def create_schema(self) -> None:
        """Create the documents table if it does not exist yet."""
        async with self._session_factory() as session:
            connection = await session.connection()
            await connection.run_sync(Base.metadata.create_all)
            await session.commit()

    async def _locked(self, session: AsyncSession, collection: str, doc_id: str) -> DocumentRecord:
        result = await session.execute(
            select(DocumentRecord)
            .where(DocumentRecord.collection == collection, DocumentRecord.id == doc_id)
            .with_for_update()
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist")
        return record

    async def create(
        self, collection: str, data: dict[str, Any], doc_id: Optional[str] = None
    ) -> str:
        doc_id = doc_id or new_document_id()
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(
                        DocumentRecord(
                            collection=collection, id=doc_id, data=with_created_at(data)
                        )
                    )
        except IntegrityError as e:
            raise StoreWriteError(f"{collection}/{doc_id} already exists") from e
        except SQLAlchemyError as e:
            logger.warning(f"Create failed for {collection}: {e}")
            raise StoreWriteError(f"Could not create document in {collection}") from e
        await self._notify(collection)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.merge(
                        DocumentRecord(
                            collection=collection, id=doc_id, data=with_created_at(data)
                        )
                    )
        except SQLAlchemyError as e:
            logger.warning(f"Set failed for {collection}/{doc_id}: {e}")
            raise StoreWriteError(f"Could not write {collection}/{doc_id}") from e
        await self._notify(collection)

    async def _mutate(self, collection: str, doc_id: str, mutation) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    record = await self._locked(session, collection, doc_id)
                    # Assign a new dict so the JSONB change is flushed.
                    record.data = mutation(dict(record.data))
        except SQLAlchemyError as e:
            logger.warning(f"Update failed for {collection}/{doc_id}: {e}")
            raise StoreWriteError(f"Could not update {collection}/{doc_id}") from e
        await self._notify(collection)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self._mutate(collection, doc_id, lambda data: apply_update(data, fields))

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        expected: dict[str, Any],
        fields: dict[str, Any],
    ) -> None:
        # Checked on the locked row, so two writers cannot both pass.
        def _guarded(data: dict[str, Any]) -> dict[str, Any]:
            ensure_expected(collection, doc_id, data, expected)
            return apply_update(data, fields)

        await self._mutate(collection, doc_id, _guarded)

    async def array_union(
        self, collection: str, doc_id: str, field: str, *values: Any
    ) -> None:
        def _union(data: dict[str, Any]) -> dict[str, Any]:
            items = list(data.get(field) or [])
            items.extend(v for v in values if v not in items)
            data[field] = items
            return data

        await self._mutate(collection, doc_id, _union)

    async def array_remove(
        self, collection: str, doc_id: str, field: str, *values: Any
    ) -> None:
        def _remove(data: dict[str, Any]) -> dict[str, Any]:
            data[field] = [v for v in (data.get(field) or []) if v not in values]
            return data

        await self._mutate(collection, doc_id, _remove)

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                record = await session.get(DocumentRecord, (collection, doc_id))
        except SQLAlchemyError as e:
            raise StoreReadError(f"Could not read {collection}/{doc_id}") from e
        return _to_document(record) if record else None

    async def query(
        self, collection: str, spec: Optional[QuerySpec] = None
    ) -> list[dict[str, Any]]:
        spec = spec or QuerySpec()
        stmt = select(DocumentRecord).where(
            and_(
                DocumentRecord.collection == collection,
                *[_compile_filter(f) for f in spec.filters],
            )
        )
        if spec.order_by is not None:
            element = _json_path(spec.order_by.field)
            ordering = element.desc() if spec.order_by.descending else element.asc()
            stmt = stmt.order_by(ordering.nulls_last())
        if spec.limit:
            stmt = stmt.limit(spec.limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Could not query {collection}") from e
        return [_to_document(r) for r in records]

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(DocumentRecord).where(
                            DocumentRecord.collection == collection,
                            DocumentRecord.id == doc_id,
                        )
                    )
        except SQLAlchemyError as e:
            logger.warning(f"Delete failed for {collection}/{doc_id}: {e}")
            raise StoreWriteError(f"Could not delete {collection}/{doc_id}") from e
        if result.rowcount:
            await self._notify(collection)

    async def close(self) -> None:
        await super().close()
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            await bind.dispose()
