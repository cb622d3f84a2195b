# storefront/services/order_service.py
from typing import List, Tuple

from storefront.data.store import CollectionStore, utcnow_iso
from storefront.domain.errors import NotFound, PersistenceError
from storefront.domain.models import Order, OrderEvent, OrderStatus, PaymentSnapshot
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Queries and state transitions of the Order aggregate.

    pending -> paid, pending -> failed, failed -> pending (new session).
    Each transition appends an entry to order.events and runs under the
    order:<orderId> lock.
    """

    def __init__(self, store: CollectionStore, locks):
        self.repo = OrderRepo(store)
        self.locks = locks

    # query
    async def get_order(self, order_id: str) -> Order:
        order = await self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    async def find_by_session(self, session_id: str) -> Order:
        order = await self.repo.get_by_session(session_id)
        if not order:
            raise NotFound(f"No order for session {session_id}")
        return order

    async def list_orders(self, user_id: str | None = None) -> List[Order]:
        """One user's orders, newest first. No user id means the guest user."""
        orders = await self.repo.list_orders(user_id or "guest")
        return sorted(orders, key=lambda o: o.date_created or "", reverse=True)

    # commands
    async def create_pending(self, order: Order) -> Order:
        order.status = OrderStatus.PENDING
        created = await self.repo.create_order(order)
        logger.info(f"Order {created.id} created for session {created.session_id}")
        return created

    async def save(self, order: Order) -> Order:
        order.date_modified = utcnow_iso()
        saved = await self.repo.save_order(order)
        if saved is None:
            raise PersistenceError(f"order {order.id} vanished from the store")
        return saved

    async def mark_paid(
        self, session_id: str, event_id: str, event_type: str, payment: PaymentSnapshot
    ) -> Tuple[Order | None, bool]:
        """Returns (order or None, whether this event moved it to paid)."""
        found = await self.repo.get_by_session(session_id) if session_id else None
        if not found:
            return None, False

        async with self.locks.hold(f"order:{found.id}"):
            order = await self.repo.get_order(found.id)
            if order is None or order.session_id != session_id:
                return None, False

            newly_paid = order.status != OrderStatus.PAID
            order.status = OrderStatus.PAID
            order.payment = payment
            order.events.append(OrderEvent(id=event_id, type=event_type, received_at=utcnow_iso()))
            saved = await self.save(order)

        logger.info(f"Order {saved.id} paid (session {session_id}, event {event_id})")
        return saved, newly_paid

    async def mark_failed(self, session_id: str, event_id: str, event_type: str) -> Order | None:
        found = await self.repo.get_by_session(session_id) if session_id else None
        if not found:
            return None

        async with self.locks.hold(f"order:{found.id}"):
            order = await self.repo.get_order(found.id)
            if order is None or order.session_id != session_id:
                return None

            if order.status == OrderStatus.PAID:
                # out-of-order delivery, kept as-is and only reported
                logger.warning(
                    f"Order {order.id} was paid, {event_type} ({event_id}) overwrites it to failed"
                )
            order.status = OrderStatus.FAILED
            order.events.append(OrderEvent(id=event_id, type=event_type, received_at=utcnow_iso()))
            saved = await self.save(order)

        logger.info(f"Order {saved.id} failed (session {session_id}, event {event_type})")
        return saved
