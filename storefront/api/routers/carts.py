# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_cart_service
from storefront.api.errors import http_error
from storefront.domain.errors import StorefrontError
from storefront.domain.models import Cart
from storefront.domain.schemas import AddItemIn, ApplyCouponIn, ClearCartIn, UpdateItemIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=Cart)
async def get_cart(
    user_id: str | None = Query(None, alias="userId"),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return await svc.get_or_create_cart(user_id)
    except StorefrontError as e:
        raise http_error(e)


@router.post("/add", response_model=Cart)
async def add_item(payload: AddItemIn, svc: CartService = Depends(get_cart_service)):
    try:
        return await svc.add_item(payload.user_id, payload.product_id, payload.quantity)
    except StorefrontError as e:
        raise http_error(e)


@router.patch("/item/{item_id}", response_model=Cart)
async def update_item(
    item_id: str,
    payload: UpdateItemIn,
    svc: CartService = Depends(get_cart_service),
):
    """Quantity 0 or less removes the line."""
    try:
        return await svc.update_item_quantity(payload.user_id, item_id, payload.quantity)
    except StorefrontError as e:
        raise http_error(e)


@router.delete("/item/{item_id}", response_model=Cart)
async def remove_item(
    item_id: str,
    user_id: str | None = Query(None, alias="userId"),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return await svc.remove_item(user_id, item_id)
    except StorefrontError as e:
        raise http_error(e)


@router.post("/clear", response_model=Cart)
async def clear_cart(payload: ClearCartIn, svc: CartService = Depends(get_cart_service)):
    try:
        return await svc.clear(payload.user_id)
    except StorefrontError as e:
        raise http_error(e)


@router.post("/coupon", response_model=Cart)
async def apply_coupon(payload: ApplyCouponIn, svc: CartService = Depends(get_cart_service)):
    try:
        return await svc.apply_coupon(payload.user_id, payload.code)
    except StorefrontError as e:
        raise http_error(e)


@router.delete("/coupon", response_model=Cart)
async def remove_coupon(
    user_id: str | None = Query(None, alias="userId"),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return await svc.remove_coupon(user_id)
    except StorefrontError as e:
        raise http_error(e)
