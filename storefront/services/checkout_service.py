# storefront/services/checkout_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from storefront.data.store import new_id, utcnow_iso
from storefront.domain.errors import InvalidInput, InvalidStateTransition, PersistenceError
from storefront.domain.models import Order, OrderEvent, OrderItem, OrderStatus
from storefront.domain.pricing import D, round_money, to_minor_units
from storefront.services.order_service import OrderService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


class CheckoutService:
    """
    Checkout sessions at the payment provider, each tied to one Order.

    Lines are always priced from the current catalog, never from the cart's
    captured prices. Products that no longer exist are dropped from the
    session instead of failing the request.
    """

    def __init__(self, orders: OrderService, products, payments, locks, origin: str):
        self.orders = orders
        self.products = products
        self.payments = payments
        self.locks = locks
        self.origin = origin.rstrip("/")

    def success_url(self, url: str | None) -> str:
        if not url:
            return f"{self.origin}/checkout/success?session_id={SESSION_PLACEHOLDER}"
        if SESSION_PLACEHOLDER in url:
            return url
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}session_id={SESSION_PLACEHOLDER}"

    def cancel_url(self, url: str | None) -> str:
        return url or f"{self.origin}/checkout/cancel"

    async def _resolve(self, items: Iterable[Dict[str, Any]]) -> Tuple[List[OrderItem], List[dict]]:
        order_items: List[OrderItem] = []
        line_items: List[dict] = []

        for it in items:
            product_id = it.get("productId") or it.get("product_id")
            quantity = it.get("quantity", 1)
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidInput(f"Invalid quantity for product {product_id}")

            product = await self.products.get_product(str(product_id)) if product_id else None
            if product is None:
                logger.warning(f"Checkout: product {product_id} not found, line dropped")
                continue

            unit = to_minor_units(product.price)
            currency = (product.currency or "USD").upper()
            order_items.append(
                OrderItem(
                    product_id=product.id,
                    title=product.title,
                    quantity=quantity,
                    price=round_money(product.price),
                    unit_amount=unit,
                    currency=currency,
                )
            )
            line_items.append(
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {
                            "name": product.title or product.id,
                            "metadata": {"productId": product.id},
                        },
                        "unit_amount": unit,
                    },
                    "quantity": quantity,
                }
            )

        if not order_items:
            raise InvalidInput("None of the requested products are available")
        if len({i.currency for i in order_items}) > 1:
            raise InvalidInput("All checkout items must share one currency")
        return order_items, line_items

    @staticmethod
    def _apply_totals(order: Order, order_items: List[OrderItem]) -> Order:
        total = round_money(sum((D(i.price) * i.quantity for i in order_items), Decimal("0")))
        order.items = order_items
        order.subtotal = total
        order.tax = Decimal("0.00")
        order.shipping = Decimal("0.00")
        order.total = total
        order.amount_total = sum(i.unit_amount * i.quantity for i in order_items)
        order.currency = order_items[0].currency
        return order

    async def create_session(
        self,
        items: Iterable[Dict[str, Any]],
        success_url: str | None = None,
        cancel_url: str | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        order_items, line_items = await self._resolve(items)
        # provider metadata values are strings
        metadata = {str(k): str(v) for k, v in (metadata or {}).items() if v is not None}

        session = await self.payments.create_checkout_session(
            line_items, self.success_url(success_url), self.cancel_url(cancel_url), metadata
        )

        order = Order(
            id=new_id(),
            user_id=metadata.get("userId") or "guest",
            session_id=session.id,
            coupon_code=metadata.get("couponCode"),
        )
        self._apply_totals(order, order_items)

        try:
            order = await self.orders.create_pending(order)
        except PersistenceError:
            logger.error(f"Session {session.id} was created but its order could not be stored")
            raise

        return {"sessionId": session.id, "url": session.url, "orderId": order.id}

    async def retry_session(self, order_id: str) -> Dict[str, Any]:
        async with self.locks.hold(f"order:{order_id}"):
            order = await self.orders.get_order(order_id)
            if order.status == OrderStatus.PAID:
                raise InvalidStateTransition(f"Order {order_id} is already paid")

            requested = [{"productId": i.product_id, "quantity": i.quantity} for i in order.items]
            order_items, line_items = await self._resolve(requested)

            metadata = {"userId": order.user_id, "orderId": order.id}
            if order.coupon_code:
                metadata["couponCode"] = order.coupon_code

            session = await self.payments.create_checkout_session(
                line_items, self.success_url(None), self.cancel_url(None), metadata
            )

            previous = order.session_id
            order.session_id = session.id
            order.status = OrderStatus.PENDING
            self._apply_totals(order, order_items)
            order.events.append(
                OrderEvent(id=session.id, type="order.session_retried", received_at=utcnow_iso())
            )

            try:
                order = await self.orders.save(order)
            except PersistenceError:
                logger.error(f"Session {session.id} created, order {order_id} not updated")
                raise

        logger.info(f"Order {order.id} moved from session {previous} to {session.id}")
        return {"sessionId": session.id, "url": session.url, "orderId": order.id}
