# storefront/services/webhook_service.py
from typing import Dict

from storefront.data.store import CollectionStore
from storefront.domain.errors import PersistenceError, SignatureInvalid
from storefront.domain.models import PaymentSnapshot, WebhookEvent
from storefront.repos.event_repo import EventRepo
from storefront.services.coupon_service import CouponService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.payment_provider import parse_event
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PAID_EVENTS = {"checkout.session.completed"}
FAILED_EVENTS = {
    "checkout.session.expired",
    "checkout.session.async_payment_failed",
    "payment_intent.payment_failed",
}


def session_id_of(event: WebhookEvent) -> str | None:
    obj = event.object
    if event.type.startswith("checkout.session."):
        return obj.get("id")
    # payment intents carry the session id in metadata when there is one
    return (obj.get("metadata") or {}).get("sessionId") or obj.get("id")


class WebhookService:
    """
    Payment provider callbacks: verify, deduplicate, dispatch, record.

    Once the signature check passes the event is always acknowledged, also
    when no order matches or dispatch fails, so the provider stops retrying.
    """

    def __init__(
        self,
        store: CollectionStore,
        orders: OrderService,
        payments,
        locks,
        webhook_secret: str = "",
        allow_unsigned: bool = False,
        coupons: CouponService | None = None,
        notifier: NotificationService | None = None,
    ):
        self.ledger = EventRepo(store)
        self.orders = orders
        self.payments = payments
        self.locks = locks
        self.webhook_secret = webhook_secret
        self.allow_unsigned = allow_unsigned
        self.coupons = coupons or CouponService(store, locks)
        self.notifier = notifier or NotificationService()

    def authenticate(self, raw_payload: bytes, signature_header: str | None) -> WebhookEvent:
        if self.webhook_secret:
            return self.payments.verify_webhook_signature(
                raw_payload, signature_header, self.webhook_secret
            )
        if self.allow_unsigned:
            logger.warning("STRIPE_WEBHOOK_SECRET not set, accepting unsigned webhook (insecure)")
            return parse_event(raw_payload)
        raise SignatureInvalid("Webhook secret is not configured")

    async def handle_event(self, raw_payload: bytes, signature_header: str | None) -> Dict[str, bool]:
        event = self.authenticate(raw_payload, signature_header)

        async with self.locks.hold(f"event:{event.id}"):
            try:
                if await self.ledger.is_processed(event.id):
                    logger.info(f"Event {event.id} already processed, skipping")
                    return {"received": True, "idempotent": True}
            except PersistenceError as e:
                # at-least-once: a broken ledger must not drop the update
                logger.warning(f"Ledger lookup failed for event {event.id}, processing anyway: {e}")

            try:
                await self.dispatch(event)
            except Exception as e:
                logger.exception(f"Processing of event {event.id} ({event.type}) failed: {e}")

            try:
                await self.ledger.mark_processed(event.id, event.type)
            except PersistenceError as e:
                logger.error(f"Could not record event {event.id} as processed: {e}")

        return {"received": True}

    async def dispatch(self, event: WebhookEvent) -> None:
        if event.type in PAID_EVENTS:
            await self._on_paid(event)
        elif event.type in FAILED_EVENTS:
            await self._on_failed(event)
        else:
            logger.info(f"Ignoring event {event.id} of type {event.type}")

    async def _on_paid(self, event: WebhookEvent) -> None:
        obj = event.object
        session_id = session_id_of(event)
        payment = PaymentSnapshot(
            amount_received=obj.get("amount_total"),
            currency=obj.get("currency"),
            payment_intent=obj.get("payment_intent"),
            payment_status=obj.get("payment_status"),
        )

        order, newly_paid = await self.orders.mark_paid(session_id, event.id, event.type, payment)
        if order is None:
            logger.warning(f"Payment for unknown session {session_id} (event {event.id})")
            return

        if newly_paid:
            if order.coupon_code:
                await self.coupons.record_usage(order.coupon_code)
            await self.notifier.send_order_paid(order)

    async def _on_failed(self, event: WebhookEvent) -> None:
        session_id = session_id_of(event)
        order = await self.orders.mark_failed(session_id, event.id, event.type)
        if order is None:
            logger.warning(f"{event.type} for unknown session {session_id} (event {event.id})")
