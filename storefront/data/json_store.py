# storefront/data/json_store.py
import asyncio
import json
from pathlib import Path
from typing import Dict, List

from storefront.data.store import CollectionStore, Row
from storefront.domain.errors import PersistenceError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class JsonCollectionStore(CollectionStore):
    """
    One `<collection>.json` array per collection under data_dir.

    Reads and writes go through a worker thread; every mutation of a
    collection holds that collection's lock for the whole read-modify-write.
    """

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir).resolve()
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, collection: str) -> asyncio.Lock:
        return self._locks.setdefault(collection, asyncio.Lock())

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    async def connect(self) -> None:
        await asyncio.to_thread(self.data_dir.mkdir, parents=True, exist_ok=True)
        logger.info(f"JSON store ready in {self.data_dir}")

    # -- blocking helpers, run in a thread --
    def _read(self, collection: str) -> List[Row]:
        path = self._path(collection)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            path.write_text("[]", encoding="utf-8")
            return []
        data = json.loads(path.read_text(encoding="utf-8") or "[]")
        return data if isinstance(data, list) else []

    def _write(self, collection: str, rows: List[Row]) -> None:
        path = self._path(collection)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(rows, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    async def _load(self, collection: str) -> List[Row]:
        try:
            return await asyncio.to_thread(self._read, collection)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read collection {collection}: {e}")
            raise PersistenceError(f"cannot read collection {collection}") from e

    async def _store(self, collection: str, rows: List[Row]) -> None:
        try:
            await asyncio.to_thread(self._write, collection, rows)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write collection {collection}: {e}")
            raise PersistenceError(f"cannot write collection {collection}") from e

    # -- CollectionStore --
    async def all(self, collection: str) -> List[Row]:
        return await self._load(collection)

    async def save_all(self, collection: str, rows: List[Row]) -> None:
        async with self._lock(collection):
            await self._store(collection, list(rows))

    async def find_by_id(self, collection: str, id: str) -> Row | None:
        rows = await self._load(collection)
        return next((r for r in rows if r.get("id") == id), None)

    async def insert(self, collection: str, item: Row) -> Row:
        async with self._lock(collection):
            rows = await self._load(collection)
            row = self._stamp_new(item)
            rows.append(row)
            await self._store(collection, rows)
            return row

    async def update(self, collection: str, id: str, patch: Row) -> Row | None:
        async with self._lock(collection):
            rows = await self._load(collection)
            for idx, row in enumerate(rows):
                if row.get("id") == id:
                    rows[idx] = self._stamp_update(row, id, patch)
                    await self._store(collection, rows)
                    return rows[idx]
            return None

    async def remove(self, collection: str, id: str) -> bool:
        async with self._lock(collection):
            rows = await self._load(collection)
            remaining = [r for r in rows if r.get("id") != id]
            await self._store(collection, remaining)
            return len(remaining) != len(rows)
