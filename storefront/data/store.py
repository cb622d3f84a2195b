# storefront/data/store.py
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List

Row = Dict[str, Any]


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class CollectionStore(ABC):
    """
    Generic persistence of records keyed by id, grouped into named collections.

    Every backend (memory, json files, sql documents table) exposes the same
    narrow async interface, so services never know which one they talk to.
    Backend failures surface as PersistenceError.
    """

    async def connect(self) -> None:
        """Open connections / create tables. Called once at startup."""

    async def close(self) -> None:
        """Release resources. Called once at shutdown."""

    @abstractmethod
    async def all(self, collection: str) -> List[Row]:
        ...

    @abstractmethod
    async def save_all(self, collection: str, rows: List[Row]) -> None:
        """Replace the whole collection with `rows`."""

    @abstractmethod
    async def find_by_id(self, collection: str, id: str) -> Row | None:
        ...

    @abstractmethod
    async def insert(self, collection: str, item: Row) -> Row:
        """Store a new record, assigning id (unless given) and timestamps."""

    @abstractmethod
    async def update(self, collection: str, id: str, patch: Row) -> Row | None:
        """Merge `patch` into the record; None when the id does not exist."""

    @abstractmethod
    async def remove(self, collection: str, id: str) -> bool:
        ...

    @staticmethod
    def _stamp_new(item: Row) -> Row:
        now = utcnow_iso()
        return {**item, "id": item.get("id") or new_id(), "dateCreated": now, "dateModified": now}

    @staticmethod
    def _stamp_update(row: Row, id: str, patch: Row) -> Row:
        return {**row, **patch, "id": id, "dateModified": utcnow_iso()}


def build_store(settings) -> CollectionStore:
    """Pick the backend named by STORAGE_DRIVER."""
    driver = (settings.storage_driver or "json").lower()

    if driver in ("sql", "sqlalchemy", "postgres", "postgresql", "pg", "sqlite"):
        from storefront.data.sql_store import SqlCollectionStore
        return SqlCollectionStore(settings.database_url)

    if driver == "memory":
        from storefront.data.memory_store import MemoryCollectionStore
        return MemoryCollectionStore()

    from storefront.data.json_store import JsonCollectionStore
    return JsonCollectionStore(settings.data_dir)
