# storefront/services/notification_service.py
import asyncio

from storefront.celery_worker import celery_app
from storefront.domain.models import Order
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.services.notification_service.send_order_paid_notification_task")
def send_order_paid_notification_task(user_id: str, order_id: str, total: str):
    """
    A real deployment would send email/SMS here. For now it logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} paid, total {total}")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}


class NotificationService:
    """
    Order notifications, handed off to Celery.
    Disabled by default (ORDER_NOTIFICATIONS), in which case it only logs.
    """

    def __init__(self, enabled: bool = False, task=None):
        self.enabled = enabled
        self.task = task or send_order_paid_notification_task

    async def send_order_paid(self, order: Order) -> None:
        if not self.enabled:
            logger.info(f"Order {order.id} paid (notifications disabled)")
            return
        try:
            # publishing talks to the broker synchronously
            await asyncio.to_thread(self.task.delay, order.user_id, order.id, str(order.total))
        except Exception as e:
            # broker outage must not fail the webhook that marked the order paid
            logger.warning(f"Could not queue paid notification for order {order.id}: {e}")
