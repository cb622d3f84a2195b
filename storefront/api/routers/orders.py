# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_checkout_service, get_order_service
from storefront.api.errors import http_error
from storefront.domain.errors import StorefrontError
from storefront.domain.models import Order
from storefront.domain.schemas import CheckoutSessionOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[Order])
async def list_orders(
    user_id: str | None = Query(None, alias="userId"),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return await svc.list_orders(user_id)
    except StorefrontError as e:
        raise http_error(e)


@router.get("/by-session/{session_id}", response_model=Order)
async def get_by_session(session_id: str, svc: OrderService = Depends(get_order_service)):
    """
    Order status polled by the checkout success page.
    404 until an order exists for the session.
    """
    try:
        return await svc.find_by_session(session_id)
    except StorefrontError as e:
        raise http_error(e)


@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    try:
        return await svc.get_order(order_id)
    except StorefrontError as e:
        raise http_error(e)


@router.post("/{order_id}/retry-session", response_model=CheckoutSessionOut)
async def retry_session(order_id: str, svc: CheckoutService = Depends(get_checkout_service)):
    """New checkout session for a pending or failed order."""
    try:
        res = await svc.retry_session(order_id)
    except StorefrontError as e:
        raise http_error(e)
    return CheckoutSessionOut.from_result(res)
