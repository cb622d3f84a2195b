from decimal import Decimal

from storefront.data.store import CollectionStore, new_id, utcnow_iso
from storefront.domain.errors import InvalidInput, NotFound
from storefront.domain.models import Cart, CartItem
from storefront.domain.pricing import ZERO, recalc
from storefront.repos.cart_repo import CartRepo
from storefront.services.coupon_service import CouponRejected, CouponService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

GUEST = "guest"


def _user(user_id: str | None) -> str:
    return str(user_id).strip() if user_id not in (None, "") else GUEST


def _positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput("Quantity must be a positive integer")
    return quantity


class CartService:
    """
    One cart per user id, created lazily.

    Every command reads the whole cart, mutates it in memory, recomputes the
    derived totals and writes it back, all under the cart:<userId> lock.
    """

    def __init__(
        self,
        store: CollectionStore,
        products,
        locks,
        coupons: CouponService | None = None,
        currency: str = "USD",
    ):
        self.repo = CartRepo(store)
        self.products = products
        self.locks = locks
        self.coupons = coupons or CouponService(store, locks)
        self.currency = currency

    # query
    async def get_or_create_cart(self, user_id: str | None) -> Cart:
        user_id = _user(user_id)
        async with self.locks.hold(f"cart:{user_id}"):
            return await self._load_or_create(user_id)

    async def _load_or_create(self, user_id: str) -> Cart:
        cart = await self.repo.get_by_user(user_id)
        if cart:
            return cart

        cart = recalc(Cart(id=new_id(), user_id=user_id, currency=self.currency))
        created = await self.repo.create_cart(cart)
        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    async def _commit(self, cart: Cart) -> Cart:
        recalc(cart)
        cart.date_modified = utcnow_iso()
        return await self.repo.save_cart(cart)

    # commands
    async def add_item(self, user_id: str | None, product_id: str, quantity) -> Cart:
        quantity = _positive_quantity(quantity)
        if not product_id:
            raise InvalidInput("productId is required")
        user_id = _user(user_id)

        async with self.locks.hold(f"cart:{user_id}"):
            product = await self.products.get_product(str(product_id))
            if product is None:
                raise NotFound(f"Product {product_id} not found")

            cart = await self._load_or_create(user_id)
            line = cart.find_product_line(product.id)

            if line:
                # captured price stays, only the quantity grows
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{line.quantity} -> {line.quantity + quantity}"
                )
                line.quantity += quantity
            else:
                logger.info(f"Adding product {product_id} to cart {cart.id}")
                cart.items.append(
                    CartItem(
                        id=new_id(),
                        product_id=product.id,
                        product=product,
                        quantity=quantity,
                        price=product.price,
                        date_added=utcnow_iso(),
                    )
                )

            return await self._commit(cart)

    async def update_item_quantity(self, user_id: str | None, item_id: str, quantity) -> Cart:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidInput("Quantity must be an integer")
        user_id = _user(user_id)

        async with self.locks.hold(f"cart:{user_id}"):
            cart = await self._load_or_create(user_id)
            item = cart.find_item(item_id)

            if quantity <= 0:
                if item is None:
                    # removing twice is fine, nothing to write
                    return recalc(cart)
                cart.items = [i for i in cart.items if i.id != item_id]
                logger.info(f"Removed item {item_id} from cart {cart.id}")
                return await self._commit(cart)

            if item is None:
                raise NotFound(f"Cart item {item_id} not found")

            item.quantity = quantity
            logger.info(f"Cart {cart.id}: item {item_id} quantity set to {quantity}")
            return await self._commit(cart)

    async def remove_item(self, user_id: str | None, item_id: str) -> Cart:
        return await self.update_item_quantity(user_id, item_id, 0)

    async def clear(self, user_id: str | None) -> Cart:
        user_id = _user(user_id)
        async with self.locks.hold(f"cart:{user_id}"):
            cart = await self._load_or_create(user_id)
            cart.items = []
            cart.discount = ZERO
            cart.coupon_code = None
            cart.free_shipping = False
            logger.info(f"Cleared cart {cart.id}")
            return await self._commit(cart)

    async def apply_coupon(self, user_id: str | None, code: str) -> Cart:
        if not code or not str(code).strip():
            raise InvalidInput("Coupon code is required")
        user_id = _user(user_id)

        async with self.locks.hold(f"cart:{user_id}"):
            cart = await self._load_or_create(user_id)
            result = await self.coupons.validate(
                code, cart.items, recalc(cart).subtotal, applied_code=cart.coupon_code
            )
            if not result.valid:
                raise CouponRejected(result)

            cart.discount = result.discount or Decimal("0")
            cart.coupon_code = result.code
            cart.free_shipping = bool(result.free_shipping)
            logger.info(f"Coupon {result.code} applied to cart {cart.id}, discount {cart.discount}")
            return await self._commit(cart)

    async def remove_coupon(self, user_id: str | None) -> Cart:
        user_id = _user(user_id)
        async with self.locks.hold(f"cart:{user_id}"):
            cart = await self._load_or_create(user_id)
            if cart.coupon_code:
                logger.info(f"Coupon {cart.coupon_code} removed from cart {cart.id}")
            cart.discount = ZERO
            cart.coupon_code = None
            cart.free_shipping = False
            return await self._commit(cart)
