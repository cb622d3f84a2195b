# storefront/repos/order_repo.py
from typing import List

from storefront.data.store import CollectionStore
from storefront.domain.models import Order


class OrderRepo:
    collection = "orders"

    def __init__(self, store: CollectionStore):
        self.store = store

    async def create_order(self, order: Order) -> Order:
        row = await self.store.insert(self.collection, order.to_record())
        return Order.from_record(row)

    async def get_order(self, order_id: str) -> Order | None:
        row = await self.store.find_by_id(self.collection, order_id)
        return Order.from_record(row) if row else None

    async def get_by_session(self, session_id: str) -> Order | None:
        rows = await self.store.all(self.collection)
        row = next((r for r in rows if r.get("sessionId") == session_id), None)
        return Order.from_record(row) if row else None

    async def all(self) -> List[Order]:
        return [Order.from_record(r) for r in await self.store.all(self.collection)]

    async def list_orders(self, user_id: str) -> List[Order]:
        rows = await self.store.all(self.collection)
        rows = [r for r in rows if r.get("userId") == user_id]
        return [Order.from_record(r) for r in rows]

    async def save_order(self, order: Order) -> Order | None:
        patch = order.to_record()
        patch.pop("dateCreated", None)
        row = await self.store.update(self.collection, order.id, patch)
        return Order.from_record(row) if row else None
