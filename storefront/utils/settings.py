# storefront/utils/settings.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


STORAGE_DRIVER = os.getenv("STORAGE_DRIVER", "json").lower()
DATA_DIR = os.getenv("DATA_DIR", "./data")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/storefront.db")

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
# INSECURE: accepts webhook bodies without signature check when no secret is set. Dev only.
ALLOW_UNSIGNED_WEBHOOKS = _flag("ALLOW_UNSIGNED_WEBHOOKS")
PUBLIC_ORIGIN = os.getenv("PUBLIC_ORIGIN", "http://localhost:3000")

PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "")

LOCK_BACKEND = os.getenv("LOCK_BACKEND", "local").lower()
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
LOCK_TTL_SECONDS = int(os.getenv("LOCK_TTL_SECONDS", 30))
LOCK_WAIT_SECONDS = float(os.getenv("LOCK_WAIT_SECONDS", 10))

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")
ORDER_NOTIFICATIONS = _flag("ORDER_NOTIFICATIONS")
PENDING_ORDER_TTL_SECONDS = int(os.getenv("PENDING_ORDER_TTL_SECONDS", 24 * 60 * 60))
RECONCILE_INTERVAL_SECONDS = int(os.getenv("RECONCILE_INTERVAL_SECONDS", 600))

SEED_DEMO_DATA = _flag("SEED_DEMO_DATA")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD").upper()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class Settings:
    """Runtime configuration handed to create_app() and the worker."""

    storage_driver: str = STORAGE_DRIVER
    data_dir: str = DATA_DIR
    database_url: str = DATABASE_URL
    stripe_secret_key: str = STRIPE_SECRET_KEY
    stripe_webhook_secret: str = STRIPE_WEBHOOK_SECRET
    allow_unsigned_webhooks: bool = ALLOW_UNSIGNED_WEBHOOKS
    public_origin: str = PUBLIC_ORIGIN
    product_service_url: str = PRODUCT_SERVICE_URL
    lock_backend: str = LOCK_BACKEND
    redis_url: str = REDIS_URL
    lock_ttl_seconds: int = LOCK_TTL_SECONDS
    lock_wait_seconds: float = LOCK_WAIT_SECONDS
    order_notifications: bool = ORDER_NOTIFICATIONS
    pending_order_ttl_seconds: int = PENDING_ORDER_TTL_SECONDS
    seed_demo_data: bool = SEED_DEMO_DATA
    default_currency: str = DEFAULT_CURRENCY

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()

    @property
    def origin(self) -> str:
        return self.public_origin.rstrip("/")
