"""
Orders API Endpoints
Order history, nested attribute updates, shipping rates and product reviews

Orders are addressed by number (R123456789), numeric id or "current".
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from storefront.core.auth import get_current_user
from storefront.core.cache import catalog_cache
from storefront.core.errors import NotFoundError, ValidationFailed
from storefront.domain.order import OrderUpdate
from storefront.domain.reference import Rating
from storefront.domain.user import User
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.rating_repository import RatingRepository
from storefront.services.cart_service import CartService
from storefront.services.order_updater import OrderUpdater

router = APIRouter()

LIST_INCLUDE = {'line_items', 'shipments', 'payments'}


class OrderUpdateRequest(BaseModel):
    order: OrderUpdate


class ReviewRequest(BaseModel):
    lineItemId: int = Field(..., description="Purchased line item being reviewed")
    rating: int
    comment: Optional[str] = None


@router.get("")
async def list_orders(user: User = Depends(get_current_user)):
    """The user's orders, newest first"""
    orders = OrderRepository().find_for_user(user.id)
    return [order.to_dict(include=LIST_INCLUDE) for order in orders]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(user: User = Depends(get_current_user)):
    order = CartService().create_order(user)
    return order.to_dict(include={'line_items'})


@router.get("/{order_id}")
async def get_order(order_id: str, user: User = Depends(get_current_user)):
    """Order with line items (variant and images), addresses, shipments with rates and payments"""
    order = CartService().find_order(order_id, user)
    return order.to_dict()


@router.put("/{order_id}")
async def update_order(order_id: str, request: OrderUpdateRequest, user: User = Depends(get_current_user)):
    """
    Apply nested attribute updates and save the order once

    Body:
        {"order": {"email": ..., "bill_address": {...}, "use_billing": true,
                   "payments_attributes": [{"payment_method_id": 1}],
                   "line_items_attributes": [{"id": 5, "quantity": 0}]}}
    """
    with CartService().locked_order(order_id, user) as order:
        OrderUpdater().update(order, request.order)
    return order.to_dict(include=LIST_INCLUDE)


@router.delete("/{order_id}")
async def delete_order(order_id: str, user: User = Depends(get_current_user)):
    with CartService().locked_order(order_id, user) as order:
        OrderRepository().delete(order.id)
    return {"message": "Order deleted successfully"}


@router.get("/{order_id}/available_shipping_methods")
async def available_shipping_methods(order_id: str, user: User = Depends(get_current_user)):
    """Shipments of the order with the rate of every shipping method"""
    order = CartService().find_order(order_id, user)
    if not order.shipments:
        raise ValidationFailed([
            "Order must have a shipping address before shipping methods can be determined"
        ])
    return order.to_dict(include={'shipments'})


@router.post("/{order_id}/review_product", status_code=status.HTTP_201_CREATED)
async def review_product(order_id: str, request: ReviewRequest, user: User = Depends(get_current_user)):
    """Rate (0..5) the product of one of the order's line items"""
    order = CartService().find_order(order_id, user)
    line_item = order.find_line_item(request.lineItemId)
    if not line_item:
        raise NotFoundError("Line item not found")

    rating = Rating(line_item_id=line_item.id, user_id=user.id, rating=request.rating, comment=request.comment)
    errors = rating.validation_errors()
    if errors:
        raise ValidationFailed(errors)

    RatingRepository().create(rating)
    # Product payloads embed the rating summary
    catalog_cache.delete_matched("products_*")
    return {"message": "Rating submitted successfully"}
