# storefront/data/sql_store.py
from datetime import datetime
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from storefront.data.database import create_engine_and_sessions, create_tables
from storefront.data.models.document import DocumentModel
from storefront.data.store import CollectionStore, Row, new_id, utcnow_iso
from storefront.domain.errors import PersistenceError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _parse_ts(value: str | None) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return datetime.fromisoformat(utcnow_iso())


class SqlCollectionStore(CollectionStore):
    """
    All collections live in one `documents` table: (id, collection, data JSON, timestamps).
    The row handed back to callers is the JSON document itself.
    """

    def __init__(self, url: str):
        self.url = url
        self.engine = None
        self.sessions = None

    async def connect(self) -> None:
        self.engine, self.sessions = create_engine_and_sessions(self.url)
        try:
            await create_tables(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create documents table: {e}")
            raise PersistenceError("cannot initialise documents table") from e
        logger.info("SQL store connected and documents table is ready")

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.sessions = None

    def _session(self):
        if self.sessions is None:
            raise PersistenceError("SQL store is not connected")
        return self.sessions()

    @staticmethod
    def _to_model(collection: str, row: Row) -> DocumentModel:
        return DocumentModel(
            id=row["id"],
            collection=collection,
            data=row,
            date_created=_parse_ts(row.get("dateCreated")),
            date_modified=_parse_ts(row.get("dateModified")),
        )

    async def all(self, collection: str) -> List[Row]:
        try:
            async with self._session() as session:
                result = await session.execute(
                    select(DocumentModel)
                    .where(DocumentModel.collection == collection)
                    .order_by(DocumentModel.date_created)
                )
                return [dict(doc.data) for doc in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot read collection {collection}") from e

    async def save_all(self, collection: str, rows: List[Row]) -> None:
        now = utcnow_iso()
        docs = []
        for row in rows:
            row = dict(row)
            row["id"] = row.get("id") or new_id()
            row.setdefault("dateCreated", now)
            row.setdefault("dateModified", now)
            docs.append(self._to_model(collection, row))
        try:
            async with self._session() as session:
                async with session.begin():
                    await session.execute(
                        delete(DocumentModel).where(DocumentModel.collection == collection)
                    )
                    session.add_all(docs)
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot write collection {collection}") from e

    async def find_by_id(self, collection: str, id: str) -> Row | None:
        try:
            async with self._session() as session:
                doc = await session.get(DocumentModel, (collection, id))
                if doc is None:
                    return None
                return dict(doc.data)
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot read {collection}/{id}") from e

    async def insert(self, collection: str, item: Row) -> Row:
        row = self._stamp_new(item)
        try:
            async with self._session() as session:
                async with session.begin():
                    session.add(self._to_model(collection, row))
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot insert into {collection}") from e
        return row

    async def update(self, collection: str, id: str, patch: Row) -> Row | None:
        try:
            async with self._session() as session:
                async with session.begin():
                    doc = await session.get(DocumentModel, (collection, id))
                    if doc is None:
                        return None
                    row = self._stamp_update(dict(doc.data), id, patch)
                    # new dict object so the JSON column is flagged dirty
                    doc.data = row
                    doc.date_modified = _parse_ts(row["dateModified"])
                return row
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot update {collection}/{id}") from e

    async def remove(self, collection: str, id: str) -> bool:
        try:
            async with self._session() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(DocumentModel).where(
                            DocumentModel.collection == collection,
                            DocumentModel.id == id,
                        )
                    )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot remove {collection}/{id}") from e
