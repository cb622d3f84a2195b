# storefront/data/memory_store.py
import copy
from typing import Dict, List

from storefront.data.store import CollectionStore, Row


class MemoryCollectionStore(CollectionStore):
    """Process-local store. Rows are deep-copied in and out so callers never share state."""

    def __init__(self, initial: Dict[str, List[Row]] | None = None):
        self._collections: Dict[str, List[Row]] = copy.deepcopy(initial or {})

    async def all(self, collection: str) -> List[Row]:
        return copy.deepcopy(self._collections.get(collection, []))

    async def save_all(self, collection: str, rows: List[Row]) -> None:
        self._collections[collection] = copy.deepcopy(list(rows))

    async def find_by_id(self, collection: str, id: str) -> Row | None:
        for row in self._collections.get(collection, []):
            if row.get("id") == id:
                return copy.deepcopy(row)
        return None

    async def insert(self, collection: str, item: Row) -> Row:
        row = self._stamp_new(copy.deepcopy(item))
        self._collections.setdefault(collection, []).append(row)
        return copy.deepcopy(row)

    async def update(self, collection: str, id: str, patch: Row) -> Row | None:
        rows = self._collections.get(collection, [])
        for idx, row in enumerate(rows):
            if row.get("id") == id:
                rows[idx] = self._stamp_update(row, id, copy.deepcopy(patch))
                return copy.deepcopy(rows[idx])
        return None

    async def remove(self, collection: str, id: str) -> bool:
        rows = self._collections.get(collection, [])
        remaining = [r for r in rows if r.get("id") != id]
        self._collections[collection] = remaining
        return len(remaining) != len(rows)
