# storefront/repos/cart_repo.py
from typing import List

from storefront.data.store import CollectionStore
from storefront.domain.errors import PersistenceError
from storefront.domain.models import Cart


class CartRepo:
    collection = "carts"

    def __init__(self, store: CollectionStore):
        self.store = store

    async def all(self) -> List[Cart]:
        return [Cart.from_record(r) for r in await self.store.all(self.collection)]

    async def get_by_user(self, user_id: str) -> Cart | None:
        rows = await self.store.all(self.collection)
        row = next((r for r in rows if r.get("userId") == user_id), None)
        return Cart.from_record(row) if row else None

    async def create_cart(self, cart: Cart) -> Cart:
        row = await self.store.insert(self.collection, cart.to_record())
        return Cart.from_record(row)

    async def save_cart(self, cart: Cart) -> Cart:
        """Write back this one cart; sibling carts are never rewritten."""
        patch = cart.to_record()
        patch.pop("dateCreated", None)
        row = await self.store.update(self.collection, cart.id, patch)
        if row is None:
            raise PersistenceError(f"cart {cart.id} vanished from the store")
        return Cart.from_record(row)
