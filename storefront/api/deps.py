# storefront/api/deps.py
from dataclasses import dataclass

from fastapi import Request

from storefront.data.store import CollectionStore, build_store
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.coupon_service import CouponService
from storefront.services.lock_service import build_lock_service
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.payment_provider import StripePaymentProvider
from storefront.services.product_client import build_product_catalog
from storefront.services.webhook_service import WebhookService
from storefront.utils.settings import Settings


@dataclass
class Container:
    """Everything built once at startup and shared by the routers."""

    settings: Settings
    store: CollectionStore
    locks: object
    carts: CartService
    orders: OrderService
    checkout: CheckoutService
    webhooks: WebhookService


def build_container(
    settings: Settings,
    store: CollectionStore | None = None,
    payments=None,
    products=None,
    locks=None,
    notifier: NotificationService | None = None,
) -> Container:
    store = store or build_store(settings)
    locks = locks or build_lock_service(settings)
    products = products or build_product_catalog(settings, store)
    payments = payments or StripePaymentProvider(settings.stripe_secret_key)
    notifier = notifier or NotificationService(enabled=settings.order_notifications)
    coupons = CouponService(store, locks)

    orders = OrderService(store, locks)
    return Container(
        settings=settings,
        store=store,
        locks=locks,
        carts=CartService(store, products, locks, coupons, currency=settings.default_currency),
        orders=orders,
        checkout=CheckoutService(orders, products, payments, locks, settings.origin),
        webhooks=WebhookService(
            store,
            orders,
            payments,
            locks,
            webhook_secret=settings.stripe_webhook_secret,
            allow_unsigned=settings.allow_unsigned_webhooks,
            coupons=coupons,
            notifier=notifier,
        ),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_cart_service(request: Request) -> CartService:
    return get_container(request).carts


def get_order_service(request: Request) -> OrderService:
    return get_container(request).orders


def get_checkout_service(request: Request) -> CheckoutService:
    return get_container(request).checkout


def get_webhook_service(request: Request) -> WebhookService:
    return get_container(request).webhooks
