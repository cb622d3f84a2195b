# storefront/services/coupon_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from storefront.data.store import CollectionStore
from storefront.domain.errors import InvalidInput
from storefront.domain.models import CartItem, Coupon, CouponRejection, CouponValidation
from storefront.domain.pricing import D, round_money
from storefront.repos.coupon_repo import CouponRepo
from storefront.services.lock_service import LocalLockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CouponRejected(InvalidInput):
    def __init__(self, validation: CouponValidation):
        self.validation = validation
        super().__init__(f"Coupon rejected: {validation.reason.value}")


def _rejected(reason: CouponRejection, code: str | None = None) -> CouponValidation:
    return CouponValidation(valid=False, reason=reason, code=code)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _applicable_base(coupon: Coupon, items: Iterable[CartItem], subtotal: Decimal) -> Decimal:
    scope = coupon.applies_to
    if scope is None or scope.type == "all":
        return subtotal

    base = Decimal("0")
    for item in items:
        if scope.type == "categories" and item.product.category in scope.categories:
            base += D(item.price) * item.quantity
        elif scope.type == "products" and item.product_id in scope.products:
            base += D(item.price) * item.quantity
    return base


def evaluate_coupon(
    coupon: Coupon | None,
    items: Iterable[CartItem],
    subtotal,
    applied_code: str | None = None,
    now: datetime | None = None,
) -> CouponValidation:
    """
    Pure eligibility check of one coupon against cart contents.

    Rules, first failure wins: unknown or inactive code, code already on the
    cart, expiry, usage limit, minimum subtotal, scope (categories/products).
    The discount is resolved to an absolute amount, capped by maxDiscount and
    by the subtotal.
    """
    if coupon is None or not coupon.is_active:
        return _rejected(CouponRejection.NOT_FOUND)

    code = coupon.code.upper()
    subtotal = D(subtotal)
    now = now or datetime.now(timezone.utc)
    items = list(items)

    if applied_code and applied_code.upper() == code:
        return _rejected(CouponRejection.ALREADY_APPLIED, code)
    if coupon.expires_at and _as_utc(coupon.expires_at) < now:
        return _rejected(CouponRejection.EXPIRED, code)
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return _rejected(CouponRejection.USAGE_LIMIT_EXCEEDED, code)
    if coupon.min_subtotal and subtotal < D(coupon.min_subtotal):
        return _rejected(CouponRejection.MINIMUM_NOT_MET, code)

    base = _applicable_base(coupon, items, subtotal)
    if base <= 0 and coupon.applies_to is not None and coupon.applies_to.type != "all":
        return _rejected(CouponRejection.NOT_APPLICABLE, code)

    if coupon.type == "percentage":
        discount = base * D(coupon.value) / Decimal("100")
    else:
        discount = D(coupon.value)

    if coupon.max_discount is not None:
        discount = min(discount, D(coupon.max_discount))
    discount = min(discount, subtotal)

    return CouponValidation(
        valid=True,
        code=code,
        discount=round_money(max(discount, Decimal("0"))),
        free_shipping=bool(coupon.free_shipping),
    )


class CouponService:
    def __init__(self, store: CollectionStore, locks=None):
        self.repo = CouponRepo(store)
        self.locks = locks or LocalLockService()

    async def get_coupon(self, code: str) -> Coupon | None:
        return await self.repo.get_by_code(code)

    async def validate(
        self,
        code: str,
        items: Iterable[CartItem],
        subtotal,
        applied_code: str | None = None,
    ) -> CouponValidation:
        coupon = await self.repo.get_by_code(code)
        result = evaluate_coupon(coupon, items, subtotal, applied_code=applied_code)
        if not result.valid:
            logger.info(f"Coupon {code!r} rejected: {result.reason.value}")
        return result

    async def record_usage(self, code: str) -> None:
        # one increment at a time per code
        async with self.locks.hold(f"coupon:{code.strip().upper()}"):
            coupon = await self.repo.get_by_code(code)
            if coupon is None:
                logger.warning(f"Paid order references unknown coupon {code!r}")
                return
            updated = await self.repo.increment_usage(coupon)
        if updated is not None:
            logger.info(f"Coupon {updated.code} used ({updated.used_count} times)")
