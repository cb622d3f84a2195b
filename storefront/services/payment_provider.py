# storefront/services/payment_provider.py
import asyncio
import json
from typing import Any, Dict, List

import stripe
from pydantic import ValidationError

from storefront.domain.errors import InvalidInput, PaymentProviderError, SignatureInvalid
from storefront.domain.models import CheckoutSession, WebhookEvent
from storefront.utils.logging import get_logger
from storefront.utils.retry import stripe_retry

logger = get_logger(__name__)


def parse_event(raw_payload: bytes | str) -> WebhookEvent:
    """Turn a webhook body into a WebhookEvent; InvalidInput when it is not one."""
    try:
        data = json.loads(raw_payload)
        return WebhookEvent.model_validate(data)
    except (ValueError, TypeError, ValidationError) as e:
        raise InvalidInput("Malformed webhook payload") from e


class StripePaymentProvider:
    """
    Stripe Checkout behind the two calls the services need:
    create_checkout_session() and verify_webhook_signature().
    The SDK is blocking, so calls run in a worker thread.
    """

    def __init__(self, secret_key: str, api_version: str | None = None, tolerance: int = 300):
        self.secret_key = secret_key
        self.api_version = api_version
        # seconds a signed timestamp stays valid
        self.tolerance = tolerance

    @stripe_retry()
    def _create_session(self, params: Dict[str, Any]) -> stripe.checkout.Session:
        opts = {"api_key": self.secret_key}
        if self.api_version:
            opts["stripe_version"] = self.api_version
        return stripe.checkout.Session.create(**params, **opts)

    async def create_checkout_session(
        self,
        line_items: List[dict],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        if not self.secret_key:
            raise PaymentProviderError("STRIPE_SECRET_KEY is not configured")

        params = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        try:
            session = await asyncio.to_thread(self._create_session, params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed: {e}")
            raise PaymentProviderError("payment provider rejected the session") from e

        return CheckoutSession(id=session.id, url=getattr(session, "url", None))

    def verify_webhook_signature(
        self, raw_payload: bytes, signature_header: str | None, secret: str
    ) -> WebhookEvent:
        try:
            payload = raw_payload.decode("utf-8") if isinstance(raw_payload, bytes) else raw_payload
        except UnicodeDecodeError as e:
            raise InvalidInput("Malformed webhook payload") from e
        try:
            stripe.WebhookSignature.verify_header(
                payload, signature_header or "", secret, tolerance=self.tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureInvalid(str(e)) from e
        return parse_event(payload)
