"""
Checkout API Endpoints
State transitions of an order: next, advance, update, complete

A transition the order does not qualify for answers 422 {"errors": [...]}.
"""
from fastapi import APIRouter, Depends

from storefront.core.auth import get_current_user
from storefront.domain.user import User
from storefront.api.orders import OrderUpdateRequest
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService

router = APIRouter()


@router.put("/{order_id}/next")
async def next_state(order_id: str, user: User = Depends(get_current_user)):
    with CartService().locked_order(order_id, user) as order:
        CheckoutService().next(order)
    return order.to_dict()


@router.put("/{order_id}/advance")
async def advance(order_id: str, user: User = Depends(get_current_user)):
    """Move forward as far as the order allows (stops at confirm)"""
    with CartService().locked_order(order_id, user) as order:
        CheckoutService().advance(order)
    return order.to_dict()


@router.put("/{order_id}/update")
async def update(order_id: str, request: OrderUpdateRequest, user: User = Depends(get_current_user)):
    with CartService().locked_order(order_id, user) as order:
        CheckoutService().update(order, request.order)
    return order.to_dict()


@router.put("/{order_id}/complete")
async def complete(order_id: str, user: User = Depends(get_current_user)):
    with CartService().locked_order(order_id, user) as order:
        CheckoutService().complete(order)
    return order.to_dict()
