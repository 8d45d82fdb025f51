"""
Order Update Service
Applies nested attribute updates to an order and persists it once

OrderSaver is the single persistence routine for orders. It validates the
aggregate, runs the payment side effects, recomputes the totals and writes the
aggregate through OrderRepository. The side effects may ask for the order to
be saved again (a payment state change affects the order's payment totals);
such nested requests arrive while the outer save is running and are skipped.
"""
import logging
from decimal import Decimal
from typing import Optional

from storefront.core.errors import ValidationFailed, NotFoundError
from storefront.domain.order import Order, Payment, Address, AddressAttributes, OrderUpdate
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.repositories.variant_repository import VariantRepository
from storefront.services.order_contents import OrderContents

logger = logging.getLogger(__name__)

# Payments in these states never invalidate their siblings
INACTIVE_PAYMENT_STATES = {'invalid', 'failed'}


class OrderSaver:
    """Validates and persists an order aggregate"""

    def __init__(self, repository: Optional[OrderRepository] = None):
        self.repository = repository or OrderRepository()

    def save(self, order: Order) -> bool:
        """
        Persist the order

        Returns:
            True when this call wrote the order, False when it was a nested
            request made while the same order was already being saved

        Raises:
            ValidationFailed: the aggregate has field errors
        """
        with order.save_guard() as acquired:
            if not acquired:
                logger.debug(f"Order {order.number} is already being saved, skipping nested save")
                return False

            errors = order.validation_errors()
            if errors:
                raise ValidationFailed(errors)

            self._run_payment_callbacks(order)
            order.recalculate_totals()
            self.repository.save(order)
            return True

    def _run_payment_callbacks(self, order: Order):
        for index, payment in enumerate(order.payments):
            if payment.is_new:
                self._invalidate_old_payments(order, index)

    def _invalidate_old_payments(self, order: Order, index: int):
        """A new payment replaces the checkout payments created before it"""
        payment = order.payments[index]
        if payment.is_store_credit or payment.state in INACTIVE_PAYMENT_STATES:
            return

        for sibling in order.payments[:index]:
            if sibling.state != 'checkout' or sibling.is_store_credit:
                continue
            if sibling.invalidate():
                logger.info(f"Payment {sibling.number} on order {order.number} invalidated by {payment.number}")
                self._after_payment_save(order, sibling)

    def _after_payment_save(self, order: Order, payment: Payment):
        # A payment change updates the order's payment totals
        self.save(order)


class OrderUpdater:
    """
    Nested attribute updates for an order

    Everything in an OrderUpdate is applied to the in-memory aggregate first;
    the order is then saved exactly once.
    """

    def __init__(
        self,
        saver: Optional[OrderSaver] = None,
        reference_repository: Optional[ReferenceRepository] = None,
        variant_repository: Optional[VariantRepository] = None,
    ):
        self.saver = saver or OrderSaver()
        self.reference_repository = reference_repository or ReferenceRepository()
        self.variant_repository = variant_repository or VariantRepository()

    def update(self, order: Order, attributes: OrderUpdate) -> Order:
        if attributes.email is not None:
            order.email = attributes.email
        if attributes.special_instructions is not None:
            order.special_instructions = attributes.special_instructions

        self._apply_addresses(order, attributes)
        self._apply_line_items(order, attributes)
        order.recalculate_totals()
        self._apply_payments(order, attributes)
        self._apply_shipping_method(order, attributes)

        self.saver.save(order)
        return order

    @staticmethod
    def _build_address(current: Optional[Address], attributes: AddressAttributes) -> Address:
        """Existing address rows are never edited; a changed address is a new row"""
        address = Address(**attributes.model_dump())
        if current is not None and current.same_as(address):
            return current
        return address

    def _apply_addresses(self, order: Order, attributes: OrderUpdate):
        if attributes.bill_address is not None:
            order.bill_address = self._build_address(order.bill_address, attributes.bill_address)

        if attributes.use_billing and order.bill_address is not None:
            order.ship_address = order.bill_address.model_copy()
        elif attributes.ship_address is not None:
            order.ship_address = self._build_address(order.ship_address, attributes.ship_address)

    def _apply_line_items(self, order: Order, attributes: OrderUpdate):
        contents = OrderContents(order, variant_repository=self.variant_repository)

        for item in attributes.line_items_attributes:
            if item.id is not None:
                if item.destroy or item.quantity == 0:
                    contents.remove(item.id)
                elif item.quantity is not None:
                    contents.update_quantity(item.id, item.quantity)
            elif item.variant_id is not None and item.quantity != 0:
                contents.add(item.variant_id, item.quantity or 1)

    def _apply_payments(self, order: Order, attributes: OrderUpdate):
        for item in attributes.payments_attributes:
            method = self.reference_repository.find_payment_method(item.payment_method_id)
            if not method:
                raise NotFoundError(f"Payment method {item.payment_method_id} not found")

            amount = item.amount
            if amount is None:
                amount = max(order.outstanding_balance, Decimal('0'))

            order.payments.append(Payment(
                order_id=order.id,
                payment_method_id=method.id,
                payment_method_name=method.name,
                payment_method_type=method.type,
                amount=amount,
            ))

    @staticmethod
    def _apply_shipping_method(order: Order, attributes: OrderUpdate):
        if attributes.shipping_method_id is None:
            return
        if not order.shipments or not all(
            shipment.select_rate(attributes.shipping_method_id) for shipment in order.shipments
        ):
            raise ValidationFailed(["Shipping method is not available for this order"])
