"""
Cart API Endpoints
Operate on the signed-in user's current (incomplete) order

Every line item change runs under the order lock and saves the order once.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.core.auth import get_current_user
from storefront.domain.user import User
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.services.cart_service import CartService
from storefront.services.order_contents import OrderContents
from storefront.services.order_updater import OrderSaver

router = APIRouter()

CART_INCLUDE = {'line_items'}


class AddItemRequest(BaseModel):
    variant_id: int
    quantity: int = Field(1, ge=1)


class UpdateItemRequest(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the line item")


@router.get("")
async def show_cart(user: User = Depends(get_current_user)):
    order = CartService().current_order(user)
    return order.to_dict(include={'line_items', 'shipments', 'payments'})


@router.post("/add_item")
async def add_item(request: AddItemRequest, user: User = Depends(get_current_user)):
    with CartService().locked_current_order(user) as order:
        OrderContents(order).add(request.variant_id, request.quantity)
        OrderSaver().save(order)
    return order.to_dict(include=CART_INCLUDE)


@router.put("/update_item/{line_item_id}")
async def update_item(line_item_id: int, request: UpdateItemRequest, user: User = Depends(get_current_user)):
    with CartService().locked_current_order(user) as order:
        OrderContents(order).update_quantity(line_item_id, request.quantity)
        OrderSaver().save(order)
    return order.to_dict(include=CART_INCLUDE)


@router.delete("/remove_item/{line_item_id}")
async def remove_item(line_item_id: int, user: User = Depends(get_current_user)):
    with CartService().locked_current_order(user) as order:
        OrderContents(order).remove(line_item_id)
        OrderSaver().save(order)
    return order.to_dict(include=CART_INCLUDE)


@router.delete("/empty")
async def empty_cart(user: User = Depends(get_current_user)):
    with CartService().locked_current_order(user) as order:
        OrderContents(order).empty()
        OrderSaver().save(order)
    return {"message": "Cart emptied successfully"}


@router.get("/checkout")
async def checkout_summary(user: User = Depends(get_current_user)):
    """Cart plus the payment and shipping methods the checkout offers"""
    order = CartService().current_order(user)
    reference = ReferenceRepository()
    return {
        "cart": order.to_dict(include=CART_INCLUDE),
        "available_payment_methods": [method.model_dump() for method in reference.list_payment_methods()],
        "available_shipping_methods": [method.to_dict() for method in reference.list_shipping_methods()],
    }
