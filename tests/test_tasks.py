"""
Tests for the background reconcile task helpers, demo seed and notifications.
"""
import asyncio
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from storefront.data.seed import seed
from storefront.domain.models import Order, OrderStatus
from storefront.repos.coupon_repo import CouponRepo
from storefront.services.notification_service import (
    NotificationService,
    send_order_paid_notification_task,
)
from storefront.tasks.reconcile import find_stale_pending

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _order(order_id, status, age_hours):
    created = (NOW - timedelta(hours=age_hours)).isoformat()
    return Order(
        id=order_id,
        session_id=f"cs_{order_id}",
        status=status,
        date_created=created,
        date_modified=created,
    ).to_record()


class TestFindStalePending:
    def test_only_old_pending_orders(self, store):
        rows = [
            _order("old-pending", OrderStatus.PENDING, 48),
            _order("new-pending", OrderStatus.PENDING, 1),
            _order("old-paid", OrderStatus.PAID, 48),
            _order("old-failed", OrderStatus.FAILED, 48),
        ]

        async def scenario():
            await store.save_all("orders", rows)
            return await find_stale_pending(store, 24 * 60 * 60, now=NOW)

        stale = asyncio.run(scenario())

        assert [o.id for o in stale] == ["old-pending"]

    def test_does_not_modify_orders(self, store):
        rows = [_order("old-pending", OrderStatus.PENDING, 48)]

        async def scenario():
            await store.save_all("orders", rows)
            await find_stale_pending(store, 60, now=NOW)
            return await store.all("orders")

        assert asyncio.run(scenario()) == rows


class TestSeed:
    def test_seeds_empty_store_once(self, store):
        async def scenario():
            await seed(store)
            await seed(store)
            return await store.all("products"), await CouponRepo(store).get_by_code("welcome10")

        products, coupon = asyncio.run(scenario())

        assert len(products) == 4
        assert coupon.value == 10
        assert coupon.min_subtotal == 50

    def test_existing_products_are_kept(self, store):
        async def scenario():
            await store.insert("products", {"id": "X", "title": "Mine", "price": "1.00"})
            await seed(store)
            return await store.all("products")

        assert [p["id"] for p in asyncio.run(scenario())] == ["X"]


class TestNotifications:
    def _order(self):
        return Order(id="o1", user_id="u1", session_id="cs_1")

    def test_disabled_does_not_queue(self):
        task = Mock()
        asyncio.run(NotificationService(enabled=False, task=task).send_order_paid(self._order()))
        task.delay.assert_not_called()

    def test_enabled_queues_task(self):
        task = Mock()
        asyncio.run(NotificationService(enabled=True, task=task).send_order_paid(self._order()))
        task.delay.assert_called_once_with("u1", "o1", "0.00")

    def test_broker_failure_is_swallowed(self):
        task = Mock()
        task.delay.side_effect = ConnectionError("broker down")
        asyncio.run(NotificationService(enabled=True, task=task).send_order_paid(self._order()))
        task.delay.assert_called_once()

    def test_publish_runs_off_the_event_loop_thread(self):
        publishers = []
        task = Mock()
        task.delay.side_effect = lambda *args: publishers.append(threading.get_ident())

        async def scenario():
            await NotificationService(enabled=True, task=task).send_order_paid(self._order())
            return threading.get_ident()

        loop_thread = asyncio.run(scenario())

        task.delay.assert_called_once_with("u1", "o1", "0.00")
        assert len(publishers) == 1
        assert publishers[0] != loop_thread

    def test_task_body_runs_inline(self):
        res = send_order_paid_notification_task.run("u1", "o1", "12.00")
        assert res == {"user_id": "u1", "order_id": "o1", "status": "sent"}
