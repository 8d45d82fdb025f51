"""
Line Items API Endpoints
Nested under an order: /api/orders/{order_id}/line_items

Mutations take the order lock; a concurrent change of the same order gets
409 Conflict instead of waiting.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from storefront.core.auth import get_current_user
from storefront.core.errors import ValidationFailed
from storefront.domain.user import User
from storefront.services.cart_service import CartService
from storefront.services.order_contents import OrderContents
from storefront.services.order_updater import OrderSaver

router = APIRouter()


class LineItemParams(BaseModel):
    variant_id: Optional[int] = None
    quantity: Optional[int] = Field(None, ge=0)


class LineItemRequest(BaseModel):
    line_item: LineItemParams


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_line_item(order_id: str, request: LineItemRequest, user: User = Depends(get_current_user)):
    if request.line_item.variant_id is None:
        raise ValidationFailed(["Variant can't be blank"])

    with CartService().locked_order(order_id, user) as order:
        line_item = OrderContents(order).add(request.line_item.variant_id, request.line_item.quantity or 1)
        OrderSaver().save(order)
    return line_item.to_dict()


@router.put("/{line_item_id}")
async def update_line_item(
    order_id: str,
    line_item_id: int,
    request: LineItemRequest,
    user: User = Depends(get_current_user),
):
    """Change the quantity; quantity 0 removes the line item (204)"""
    with CartService().locked_order(order_id, user) as order:
        contents = OrderContents(order)
        if request.line_item.quantity is None:
            line_item = contents.find(line_item_id)
        else:
            line_item = contents.update_quantity(line_item_id, request.line_item.quantity)
        OrderSaver().save(order)

    if line_item is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return line_item.to_dict()


@router.delete("/{line_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line_item(order_id: str, line_item_id: int, user: User = Depends(get_current_user)):
    with CartService().locked_order(order_id, user) as order:
        OrderContents(order).remove(line_item_id)
        OrderSaver().save(order)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
