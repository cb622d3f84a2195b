# storefront/tasks/reconcile.py
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

from storefront.celery_worker import celery_app
from storefront.data.store import CollectionStore, build_store
from storefront.domain.models import Order, OrderStatus
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger
from storefront.utils.settings import Settings

logger = get_logger(__name__)


def _parse(ts: str | None) -> datetime | None:
    if not ts:
        return None
    try:
        value = datetime.fromisoformat(ts)
    except ValueError:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def find_stale_pending(
    store: CollectionStore, ttl_seconds: int, now: datetime | None = None
) -> List[Order]:
    """Pending orders whose session was created more than ttl_seconds ago."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=ttl_seconds)
    stale = []
    for order in await OrderRepo(store).all():
        created = _parse(order.date_created)
        if order.status == OrderStatus.PENDING and created and created < cutoff:
            stale.append(order)
    return stale


async def _reconcile(settings: Settings) -> int:
    store = build_store(settings)
    await store.connect()
    try:
        stale = await find_stale_pending(store, settings.pending_order_ttl_seconds)
    finally:
        await store.close()

    for order in stale:
        # only reported, an operator decides what happens to the session
        logger.warning(
            f"Order {order.id} still pending since {order.date_created} (session {order.session_id})"
        )
    return len(stale)


@celery_app.task(name="storefront.tasks.reconcile.reconcile_pending_orders_task")
def reconcile_pending_orders_task():
    logger.info("Reconcile pending orders task started")
    count = asyncio.run(_reconcile(Settings.from_env()))
    logger.info(f"Found {count} stale pending orders")
    return {"stale": count}
