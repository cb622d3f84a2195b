# storefront/repos/coupon_repo.py
from typing import List

from storefront.data.store import CollectionStore
from storefront.domain.models import Coupon


class CouponRepo:
    collection = "coupons"

    def __init__(self, store: CollectionStore):
        self.store = store

    async def list_coupons(self) -> List[Coupon]:
        return [Coupon.from_record(r) for r in await self.store.all(self.collection)]

    async def get_by_code(self, code: str) -> Coupon | None:
        wanted = (code or "").strip().upper()
        if not wanted:
            return None
        rows = await self.store.all(self.collection)
        row = next((r for r in rows if str(r.get("code", "")).upper() == wanted), None)
        return Coupon.from_record(row) if row else None

    async def create_coupon(self, coupon: Coupon) -> Coupon:
        row = await self.store.insert(self.collection, coupon.to_record())
        return Coupon.from_record(row)

    async def increment_usage(self, coupon: Coupon) -> Coupon | None:
        row = await self.store.update(
            self.collection, coupon.id, {"usedCount": coupon.used_count + 1}
        )
        return Coupon.from_record(row) if row else None
