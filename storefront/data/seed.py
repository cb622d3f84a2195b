# storefront/data/seed.py
from decimal import Decimal

from storefront.data.store import CollectionStore
from storefront.domain.models import Coupon, Product
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_PRODUCTS = [
    Product(id="P1", title="Canvas Tote", price=Decimal("25.00"), category="bags"),
    Product(id="P2", title="Ceramic Mug", price=Decimal("12.50"), category="kitchen"),
    Product(id="P3", title="Wool Scarf", price=Decimal("48.00"), category="apparel"),
    Product(id="P4", title="Desk Lamp", price=Decimal("89.99"), category="home"),
]

DEMO_COUPONS = [
    Coupon(
        id="WELCOME10",
        code="WELCOME10",
        type="percentage",
        value=Decimal("10"),
        min_subtotal=Decimal("50"),
    ),
]


async def seed(store: CollectionStore) -> None:
    # not forcing: only seed empty collections
    if not await store.all("products"):
        await store.save_all("products", [p.to_record() for p in DEMO_PRODUCTS])
        logger.info(f"Seeded {len(DEMO_PRODUCTS)} demo products")

    if not await store.all("coupons"):
        await store.save_all("coupons", [c.to_record() for c in DEMO_COUPONS])
        logger.info("Seeded demo coupons")
