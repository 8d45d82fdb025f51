"""
Order Contents Service
Adds, updates and removes line items on an order aggregate

Mutations happen in memory and recompute the totals; callers hold the
order lock and persist through OrderSaver afterwards. Changing the contents
of an order that is past the cart sends it back to the cart: its shipments
were proposed and its payments sized for the old contents.
"""
import logging
from typing import Optional

from storefront.core.errors import NotFoundError, ValidationFailed
from storefront.domain.order import Order, LineItem
from storefront.repositories.variant_repository import VariantRepository

logger = logging.getLogger(__name__)


class OrderContents:
    """
    Line item operations for one order

    Usage:
        contents = OrderContents(order)
        contents.add(variant_id=12, quantity=2)
        OrderSaver().save(order)
    """

    def __init__(self, order: Order, variant_repository: Optional[VariantRepository] = None):
        self.order = order
        self.variant_repository = variant_repository or VariantRepository()

    def add(self, variant_id: int, quantity: int = 1) -> LineItem:
        """
        Add a variant; merges into the existing line item for the same variant

        Raises:
            NotFoundError: unknown or deleted variant
            ValidationFailed: quantity below 1
        """
        if quantity is None:
            quantity = 1
        if quantity < 1:
            raise ValidationFailed(["Quantity must be greater than 0"])

        line_item = self.order.find_line_item_by_variant(variant_id)
        if line_item:
            line_item.quantity += quantity
        else:
            variant = self.variant_repository.find_by_id(variant_id)
            if not variant:
                raise NotFoundError(f"Variant {variant_id} not found")
            if variant.price is None:
                raise ValidationFailed([f"Variant {variant.sku or variant.id} has no price"])

            line_item = LineItem(
                order_id=self.order.id,
                variant_id=variant.id,
                quantity=quantity,
                price=variant.price,
                currency=variant.currency or self.order.currency,
                variant=variant,
            )
            self.order.line_items.append(line_item)

        self._contents_changed()
        logger.debug(f"Order {self.order.number}: variant {variant_id} x{quantity} added")
        return line_item

    def find(self, line_item_id: int) -> LineItem:
        line_item = self.order.find_line_item(line_item_id)
        if not line_item:
            raise NotFoundError("Line item not found")
        return line_item

    def update_quantity(self, line_item_id: int, quantity: int) -> Optional[LineItem]:
        """Set the quantity; 0 removes the line item (and returns None)"""
        line_item = self.find(line_item_id)
        if quantity is None or quantity < 0:
            raise ValidationFailed(["Quantity must be greater than or equal to 0"])

        if quantity == 0:
            self.order.remove_line_item(line_item)
            self._contents_changed()
            return None

        line_item.quantity = quantity
        self._contents_changed()
        return line_item

    def remove(self, line_item_id: int) -> LineItem:
        line_item = self.find(line_item_id)
        self.order.remove_line_item(line_item)
        self._contents_changed()
        return line_item

    def empty(self):
        """Drop every line item and shipment and restart the checkout"""
        for line_item in list(self.order.line_items):
            self.order.remove_line_item(line_item)
        self.order.shipments = []
        self._contents_changed()

    def _contents_changed(self):
        order = self.order
        if order.state not in ('cart', 'complete'):
            logger.info(f"Order {order.number}: contents changed in {order.state}, checkout restarted")
            order.shipments = []
            order.state = 'cart'
        order.recalculate_totals()
