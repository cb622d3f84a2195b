"""
Tests for the webhook processor: authentication, idempotency and order transitions.
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from conftest import WEBHOOK_SECRET, make_event, sign
from storefront.data.memory_store import MemoryCollectionStore
from storefront.domain.errors import InvalidInput, PersistenceError, SignatureInvalid
from storefront.domain.models import Coupon, OrderStatus
from storefront.repos.coupon_repo import CouponRepo
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.services.webhook_service import WebhookService


class FlakyLedgerStore(MemoryCollectionStore):
    """Ledger reads fail, everything else works."""

    async def find_by_id(self, collection, id):
        if collection == "stripe_events":
            raise PersistenceError("ledger offline")
        return await super().find_by_id(collection, id)


class ReadOnlyOrdersStore(MemoryCollectionStore):
    async def update(self, collection, id, patch):
        if collection == "orders":
            raise PersistenceError("orders are read-only")
        return await super().update(collection, id, patch)


class Harness:
    def __init__(self, store, catalog, payments, locks, secret=WEBHOOK_SECRET, allow_unsigned=False):
        self.store = store
        self.notifier = AsyncMock()
        self.orders = OrderService(store, locks)
        self.checkout = CheckoutService(self.orders, catalog, payments, locks, "http://shop.test")
        self.webhooks = WebhookService(
            store,
            self.orders,
            payments,
            locks,
            webhook_secret=secret,
            allow_unsigned=allow_unsigned,
            notifier=self.notifier,
        )

    async def open_session(self, **metadata):
        res = await self.checkout.create_session(
            [{"productId": "P1", "quantity": 2}], metadata=metadata or None
        )
        return res["sessionId"], res["orderId"]

    async def deliver(self, event_id, event_type, session_id, **fields):
        payload = make_event(event_id, event_type, session_id, **fields)
        return await self.webhooks.handle_event(payload.encode(), sign(payload))


@pytest.fixture
def harness(store, catalog, payments, locks):
    return Harness(store, catalog, payments, locks)


PAID_FIELDS = {
    "amount_total": 5000,
    "currency": "usd",
    "payment_intent": "pi_123",
    "payment_status": "paid",
}


class TestCompleted:
    def test_marks_order_paid_with_snapshot(self, harness):
        async def scenario():
            session_id, order_id = await harness.open_session(userId="u1")
            ack = await harness.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            return ack, await harness.orders.get_order(order_id)

        ack, order = asyncio.run(scenario())

        assert ack == {"received": True}
        assert order.status == OrderStatus.PAID
        assert order.payment.amount_received == 5000
        assert order.payment.currency == "usd"
        assert order.payment.payment_intent == "pi_123"
        assert order.payment.payment_status == "paid"
        assert [(e.id, e.type) for e in order.events] == [("evt_1", "checkout.session.completed")]
        harness.notifier.send_order_paid.assert_awaited_once()

    def test_duplicate_delivery_applies_once(self, harness):
        async def scenario():
            session_id, order_id = await harness.open_session()
            first = await harness.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            second = await harness.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            return first, second, await harness.orders.get_order(order_id)

        first, second, order = asyncio.run(scenario())

        assert first == {"received": True}
        assert second == {"received": True, "idempotent": True}
        assert len(order.events) == 1
        harness.notifier.send_order_paid.assert_awaited_once()

    def test_orphan_session_is_acknowledged(self, harness, store):
        async def scenario():
            ack = await harness.deliver("evt_9", "checkout.session.completed", "cs_unknown", **PAID_FIELDS)
            return ack, await store.all("orders"), await store.find_by_id("stripe_events", "evt_9")

        ack, orders, ledger_row = asyncio.run(scenario())

        assert ack == {"received": True}
        assert orders == []
        assert ledger_row["type"] == "checkout.session.completed"

    def test_coupon_usage_counted_once(self, harness, store):
        async def scenario():
            await CouponRepo(store).create_coupon(
                Coupon(id="c1", code="WELCOME10", value=Decimal("10"))
            )
            session_id, _ = await harness.open_session(couponCode="WELCOME10")
            await harness.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            # a second, distinct completion event for the same session
            await harness.deliver("evt_2", "checkout.session.completed", session_id, **PAID_FIELDS)
            return await CouponRepo(store).get_by_code("WELCOME10")

        assert asyncio.run(scenario()).used_count == 1


class TestFailures:
    @pytest.mark.parametrize(
        "event_type",
        [
            "checkout.session.expired",
            "checkout.session.async_payment_failed",
        ],
    )
    def test_marks_order_failed(self, harness, event_type):
        async def scenario():
            session_id, order_id = await harness.open_session()
            await harness.deliver("evt_f", event_type, session_id)
            return await harness.orders.get_order(order_id)

        order = asyncio.run(scenario())

        assert order.status == OrderStatus.FAILED
        assert order.events[-1].type == event_type

    def test_payment_intent_failure_uses_metadata_session(self, harness):
        async def scenario():
            session_id, order_id = await harness.open_session()
            await harness.deliver(
                "evt_pi", "payment_intent.payment_failed", "pi_1", metadata={"sessionId": session_id}
            )
            return await harness.orders.get_order(order_id)

        assert asyncio.run(scenario()).status == OrderStatus.FAILED

    def test_failure_does_not_touch_cart(self, harness, store, catalog, locks):
        carts = CartService(store, catalog, locks)

        async def scenario():
            before = await carts.add_item("u1", "P1", 2)
            session_id, _ = await harness.open_session(userId="u1")
            await harness.deliver("evt_f", "checkout.session.async_payment_failed", session_id)
            return before, await carts.get_or_create_cart("u1")

        before, after = asyncio.run(scenario())
        assert after.model_dump() == before.model_dump()

    def test_failed_then_retry(self, harness):
        async def scenario():
            session_id, order_id = await harness.open_session()
            await harness.deliver("evt_f", "checkout.session.async_payment_failed", session_id)
            failed = await harness.orders.get_order(order_id)
            retried = await harness.checkout.retry_session(order_id)
            return session_id, failed, retried, await harness.orders.get_order(order_id)

        old_session, failed, retried, order = asyncio.run(scenario())

        assert failed.status == OrderStatus.FAILED
        assert retried["sessionId"] != old_session
        assert order.session_id == retried["sessionId"]
        assert order.status == OrderStatus.PENDING

    def test_late_failure_overwrites_paid(self, harness):
        async def scenario():
            session_id, order_id = await harness.open_session()
            await harness.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            await harness.deliver("evt_2", "checkout.session.expired", session_id)
            return await harness.orders.get_order(order_id)

        order = asyncio.run(scenario())

        assert order.status == OrderStatus.FAILED
        assert [e.id for e in order.events] == ["evt_1", "evt_2"]


class TestAuthentication:
    def test_bad_signature_touches_nothing(self, harness, store):
        async def scenario():
            session_id, order_id = await harness.open_session()
            payload = make_event("evt_1", "checkout.session.completed", session_id)
            with pytest.raises(SignatureInvalid):
                await harness.webhooks.handle_event(payload.encode(), sign(payload, secret="whsec_wrong"))
            return await harness.orders.get_order(order_id), await store.all("stripe_events")

        order, ledger = asyncio.run(scenario())

        assert order.status == OrderStatus.PENDING
        assert ledger == []

    def test_missing_signature_header(self, harness):
        payload = make_event("evt_1", "checkout.session.completed", "cs_x")

        with pytest.raises(SignatureInvalid):
            asyncio.run(harness.webhooks.handle_event(payload.encode(), None))

    def test_unsigned_rejected_without_explicit_flag(self, store, catalog, payments, locks):
        h = Harness(store, catalog, payments, locks, secret="")
        payload = make_event("evt_1", "checkout.session.completed", "cs_x")

        with pytest.raises(SignatureInvalid):
            asyncio.run(h.webhooks.handle_event(payload.encode(), None))

    def test_permissive_mode_parses_unsigned(self, store, catalog, payments, locks):
        h = Harness(store, catalog, payments, locks, secret="", allow_unsigned=True)

        async def scenario():
            session_id, order_id = await h.open_session()
            payload = make_event("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            ack = await h.webhooks.handle_event(payload.encode(), None)
            return ack, await h.orders.get_order(order_id)

        ack, order = asyncio.run(scenario())

        assert ack == {"received": True}
        assert order.status == OrderStatus.PAID

    def test_malformed_payload(self, store, catalog, payments, locks):
        h = Harness(store, catalog, payments, locks, secret="", allow_unsigned=True)

        with pytest.raises(InvalidInput):
            asyncio.run(h.webhooks.handle_event(b"not json", None))


class TestResilience:
    def test_unknown_event_type_is_recorded(self, harness, store):
        async def scenario():
            ack = await harness.deliver("evt_x", "customer.created", "cus_1")
            return ack, await store.find_by_id("stripe_events", "evt_x")

        ack, row = asyncio.run(scenario())

        assert ack == {"received": True}
        assert row is not None

    def test_ledger_outage_still_processes(self, catalog, payments, locks):
        h = Harness(FlakyLedgerStore(), catalog, payments, locks)

        async def scenario():
            session_id, order_id = await h.open_session()
            ack = await h.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            return ack, await h.orders.get_order(order_id)

        ack, order = asyncio.run(scenario())

        assert ack == {"received": True}
        assert order.status == OrderStatus.PAID

    def test_dispatch_failure_is_acknowledged_and_recorded(self, catalog, payments, locks):
        store = ReadOnlyOrdersStore()
        h = Harness(store, catalog, payments, locks)

        async def scenario():
            session_id, order_id = await h.open_session()
            ack = await h.deliver("evt_1", "checkout.session.completed", session_id, **PAID_FIELDS)
            return ack, await h.orders.get_order(order_id), await store.find_by_id("stripe_events", "evt_1")

        ack, order, row = asyncio.run(scenario())

        assert ack == {"received": True}
        assert order.status == OrderStatus.PENDING
        assert row is not None
