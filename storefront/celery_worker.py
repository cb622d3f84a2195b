# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    RECONCILE_INTERVAL_SECONDS,
)

celery_app = Celery("storefront", broker=CELERY_BROKER_URL, backend=CELERY_RESULT_BACKEND)

celery_app.conf.update(
    imports=(
        "storefront.tasks.reconcile",
        "storefront.services.notification_service",
    ),
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
)

celery_app.conf.beat_schedule = {
    "reconcile-pending-orders": {
        "task": "storefront.tasks.reconcile.reconcile_pending_orders_task",
        "schedule": float(RECONCILE_INTERVAL_SECONDS),
    },
}
