"""
Shared fixtures and fakes for the storefront tests.

Collaborators outside the process (product catalog, Stripe) are replaced by
small in-memory fakes; everything else is the real code on a memory store.
"""
import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest

from storefront.data.memory_store import MemoryCollectionStore
from storefront.domain.errors import PaymentProviderError
from storefront.domain.models import CheckoutSession, Product
from storefront.services.lock_service import LocalLockService
from storefront.services.payment_provider import StripePaymentProvider

WEBHOOK_SECRET = "whsec_test_secret"


class FakeCatalog:
    """Product lookup backed by a dict; prices can be changed mid-test."""

    def __init__(self, products=None):
        self.products = {p.id: p for p in (products or [])}

    def set_price(self, product_id, price):
        self.products[product_id] = self.products[product_id].model_copy(
            update={"price": Decimal(price)}
        )

    def remove(self, product_id):
        self.products.pop(product_id, None)

    async def get_product(self, product_id):
        return self.products.get(product_id)


class FakePayments(StripePaymentProvider):
    """Stripe double: sessions are made up locally, signature checks are the real ones."""

    def __init__(self, fail=False):
        super().__init__(secret_key="sk_test_fake")
        self.fail = fail
        self.calls = []

    async def create_checkout_session(self, line_items, success_url, cancel_url, metadata):
        if self.fail:
            raise PaymentProviderError("stripe is down")
        session_id = f"cs_test_{len(self.calls) + 1}"
        self.calls.append(
            {
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
            }
        )
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")


def demo_products():
    return [
        Product(id="P1", title="Canvas Tote", price=Decimal("25.00"), category="bags"),
        Product(id="P2", title="Ceramic Mug", price=Decimal("12.50"), category="kitchen"),
        Product(id="P3", title="Wool Scarf", price=Decimal("60.00"), category="apparel"),
    ]


def make_event(event_id, event_type, session_id, **fields):
    return json.dumps(
        {"id": event_id, "type": event_type, "data": {"object": {"id": session_id, **fields}}}
    )


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    mac = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256)
    return f"t={timestamp},v1={mac.hexdigest()}"


@pytest.fixture
def store():
    return MemoryCollectionStore()


@pytest.fixture
def catalog():
    return FakeCatalog(demo_products())


@pytest.fixture
def locks():
    return LocalLockService()


@pytest.fixture
def payments():
    return FakePayments()
