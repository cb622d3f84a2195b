# storefront/api/routers/payments.py
from fastapi import APIRouter, Depends, Request

from storefront.api.deps import get_checkout_service, get_webhook_service
from storefront.api.errors import http_error
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import CheckoutSessionOut, CreateCheckoutSessionIn, WebhookAck
from storefront.services.checkout_service import CheckoutService
from storefront.services.webhook_service import WebhookService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create-checkout-session", response_model=CheckoutSessionOut)
async def create_checkout_session(
    payload: CreateCheckoutSessionIn,
    svc: CheckoutService = Depends(get_checkout_service),
):
    items = [i.model_dump(by_alias=True) for i in payload.items]
    try:
        res = await svc.create_session(
            items,
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
            metadata=payload.metadata,
        )
    except StorefrontError as e:
        raise http_error(e)
    return CheckoutSessionOut.from_result(res)


@router.post("/webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def webhook(request: Request, svc: WebhookService = Depends(get_webhook_service)):
    # signature is computed over the exact bytes, so no body model here
    raw = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        return await svc.handle_event(raw, signature)
    except StorefrontError as e:
        logger.warning(f"Webhook rejected: {e}")
        raise http_error(e)
