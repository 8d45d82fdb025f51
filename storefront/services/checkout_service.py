"""
Checkout Service
Moves an order through cart -> address -> delivery -> payment -> confirm -> complete
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from storefront.core.errors import TransitionError
from storefront.domain.order import Order, Shipment, ShippingRate, OrderUpdate, CHECKOUT_STEPS
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.services.order_updater import OrderSaver, OrderUpdater

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Checkout state machine

    Each state has a requirement the order must meet before it may leave it:
        cart:     at least one line item
        address:  email, bill address and ship address
        delivery: none (a rate was selected when entering it)
        payment:  valid payments cover the order total
        confirm:  none, leaving it completes the order
    """

    def __init__(
        self,
        saver: Optional[OrderSaver] = None,
        updater: Optional[OrderUpdater] = None,
        reference_repository: Optional[ReferenceRepository] = None,
    ):
        self.saver = saver or OrderSaver()
        self.updater = updater or OrderUpdater(saver=self.saver)
        self.reference_repository = reference_repository or ReferenceRepository()

    @staticmethod
    def requirement_errors(order: Order) -> List[str]:
        """Reasons the order cannot leave its current state (empty when it can)"""
        errors = []
        if order.state == 'cart':
            if not order.line_items:
                errors.append("There are no items for this order. Please add an item to the order to continue.")
        elif order.state == 'address':
            if not order.email:
                errors.append("Email can't be blank")
            if order.bill_address is None:
                errors.append("Bill address can't be blank")
            if order.ship_address is None:
                errors.append("Ship address can't be blank")
        elif order.state == 'payment':
            if order.covered_amount <= 0 and order.total > 0:
                errors.append("No payment found")
            elif order.covered_amount < order.total:
                errors.append("Payments do not cover the order total")
        return errors

    def _transition(self, order: Order):
        """Advance one state in memory"""
        if order.state == 'complete':
            raise TransitionError("Order is already complete")
        if order.state not in CHECKOUT_STEPS:
            raise TransitionError(f"Unknown checkout state: {order.state}")

        errors = self.requirement_errors(order)
        if errors:
            raise TransitionError(errors[0])

        if order.state == 'confirm':
            self._finalize(order)
            return

        next_state = CHECKOUT_STEPS[CHECKOUT_STEPS.index(order.state) + 1]
        if next_state == 'delivery':
            self._create_proposed_shipments(order)

        logger.info(f"Order {order.number}: {order.state} -> {next_state}")
        order.state = next_state

    def next(self, order: Order) -> Order:
        """
        Advance the order one state and save it

        Raises:
            TransitionError: the order does not meet its current state's requirement
        """
        self._transition(order)
        self.saver.save(order)
        return order

    def advance(self, order: Order) -> Order:
        """Advance as far as the order allows, stopping at confirm"""
        moved = False
        while order.state not in ('confirm', 'complete'):
            try:
                self._transition(order)
            except TransitionError as e:
                logger.debug(f"Order {order.number} stopped at {order.state}: {e.message}")
                break
            moved = True

        if moved:
            self.saver.save(order)
        return order

    def complete(self, order: Order) -> Order:
        if order.state != 'confirm':
            raise TransitionError(f"Cannot complete an order in state {order.state}")
        return self.next(order)

    def update(self, order: Order, attributes: OrderUpdate) -> Order:
        """Apply the attribute updates, then try to advance one state"""
        self.updater.update(order, attributes)
        if order.state == 'complete':
            return order
        return self.next(order)

    def _create_proposed_shipments(self, order: Order):
        methods = self.reference_repository.list_shipping_methods()
        if not methods:
            raise TransitionError("No shipping methods available for this order")

        rates = [
            ShippingRate(shipping_method_id=method.id, shipping_method_name=method.name, cost=method.cost)
            for method in sorted(methods, key=lambda m: m.cost)
        ]
        rates[0].selected = True
        order.shipments = [Shipment(order_id=order.id, cost=rates[0].cost, shipping_rates=rates)]
        order.recalculate_totals()

    @staticmethod
    def _finalize(order: Order):
        for payment in order.payments:
            if payment.state == 'checkout':
                payment.state = 'completed'
        order.recalculate_totals()

        order.state = 'complete'
        order.completed_at = datetime.now(timezone.utc)
        order.payment_state = 'paid' if order.payment_total >= order.total else 'balance_due'
        order.shipment_state = 'pending'
        logger.info(f"Order {order.number} completed, total {order.total}")
