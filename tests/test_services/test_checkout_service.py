"""
Unit tests for the checkout state machine
"""
import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from storefront.core.errors import TransitionError
from storefront.domain.order import OrderUpdate
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.repositories.variant_repository import VariantRepository
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_contents import OrderContents
from storefront.services.order_updater import OrderSaver, OrderUpdater


@pytest.fixture
def repository():
    return MagicMock(spec=OrderRepository)


@pytest.fixture
def reference_repository(shipping_methods, check_method):
    repo = MagicMock(spec=ReferenceRepository)
    # unsorted on purpose: the cheapest rate must still be selected
    repo.list_shipping_methods.return_value = list(reversed(shipping_methods))
    repo.find_payment_method.side_effect = lambda method_id: check_method if method_id == check_method.id else None
    return repo


@pytest.fixture
def checkout(repository, reference_repository):
    saver = OrderSaver(repository)
    updater = OrderUpdater(
        saver=saver,
        reference_repository=reference_repository,
        variant_repository=MagicMock(spec=VariantRepository),
    )
    return CheckoutService(saver=saver, updater=updater, reference_repository=reference_repository)


@pytest.fixture
def addressed_order(cart_order, address):
    cart_order.state = 'address'
    cart_order.bill_address = address
    cart_order.ship_address = address.model_copy()
    return cart_order


class TestRequirements:

    def test_empty_cart(self, cart_order):
        cart_order.line_items = []

        assert CheckoutService.requirement_errors(cart_order) == [
            "There are no items for this order. Please add an item to the order to continue."
        ]

    def test_address_state(self, cart_order):
        cart_order.state = 'address'
        cart_order.email = None

        assert CheckoutService.requirement_errors(cart_order) == [
            "Email can't be blank",
            "Bill address can't be blank",
            "Ship address can't be blank",
        ]

    def test_payment_state_without_payments(self, cart_order):
        cart_order.state = 'payment'

        assert CheckoutService.requirement_errors(cart_order) == ["No payment found"]

    def test_payment_state_partially_covered(self, cart_order, payment_factory):
        cart_order.state = 'payment'
        cart_order.payments = [payment_factory(payment_id=1, amount='10.00')]

        assert CheckoutService.requirement_errors(cart_order) == ["Payments do not cover the order total"]

    def test_invalid_payments_do_not_count(self, cart_order, payment_factory):
        cart_order.state = 'payment'
        cart_order.payments = [payment_factory(payment_id=1, state='invalid', amount='100.00')]

        assert CheckoutService.requirement_errors(cart_order) == ["No payment found"]


class TestNext:

    def test_cart_to_address(self, checkout, repository, cart_order):
        checkout.next(cart_order)

        assert cart_order.state == 'address'
        repository.save.assert_called_once_with(cart_order)

    def test_entering_delivery_proposes_cheapest_rate(self, checkout, addressed_order):
        checkout.next(addressed_order)

        assert addressed_order.state == 'delivery'
        shipment = addressed_order.shipments[0]
        assert [rate.shipping_method_name for rate in shipment.shipping_rates] == ['Ground', 'Express']
        assert shipment.selected_rate.shipping_method_id == 1
        assert addressed_order.shipment_total == Decimal('5.00')
        assert addressed_order.total == Decimal('44.98')

    def test_no_shipping_methods(self, checkout, reference_repository, repository, addressed_order):
        reference_repository.list_shipping_methods.return_value = []

        with pytest.raises(TransitionError) as exc_info:
            checkout.next(addressed_order)

        assert exc_info.value.message == "No shipping methods available for this order"
        assert addressed_order.state == 'address'
        repository.save.assert_not_called()

    def test_failed_requirement_keeps_state(self, checkout, repository, cart_order):
        cart_order.state = 'address'

        with pytest.raises(TransitionError):
            checkout.next(cart_order)

        assert cart_order.state == 'address'
        repository.save.assert_not_called()

    def test_complete_order_cannot_move(self, checkout, cart_order):
        cart_order.state = 'complete'

        with pytest.raises(TransitionError):
            checkout.next(cart_order)


class TestAdvanceAndComplete:

    def test_advance_stops_at_first_unmet_requirement(self, checkout, repository, addressed_order):
        checkout.advance(addressed_order)

        assert addressed_order.state == 'payment'
        repository.save.assert_called_once()

    def test_advance_stops_at_confirm(self, checkout, addressed_order, payment_factory):
        addressed_order.payments = [payment_factory(payment_id=1, amount='100.00')]

        checkout.advance(addressed_order)

        assert addressed_order.state == 'confirm'
        assert addressed_order.completed_at is None

    def test_advance_without_progress_does_not_save(self, checkout, repository, cart_order):
        cart_order.line_items = []

        checkout.advance(cart_order)

        assert cart_order.state == 'cart'
        repository.save.assert_not_called()

    def test_complete_requires_confirm(self, checkout, cart_order):
        with pytest.raises(TransitionError) as exc_info:
            checkout.complete(cart_order)

        assert exc_info.value.message == "Cannot complete an order in state cart"

    def test_complete_finalizes_order(self, checkout, cart_order, payment_factory):
        cart_order.state = 'confirm'
        cart_order.payments = [payment_factory(payment_id=1, amount='39.98')]

        checkout.complete(cart_order)

        assert cart_order.state == 'complete'
        assert cart_order.completed_at is not None
        assert cart_order.payments[0].state == 'completed'
        assert cart_order.payment_total == Decimal('39.98')
        assert cart_order.payment_state == 'paid'
        assert cart_order.shipment_state == 'pending'

    def test_items_added_at_confirm_must_be_paid_again(self, checkout, cart_order, payment_factory):
        """A payment sized for the old total no longer completes the order"""
        cart_order.state = 'confirm'
        cart_order.payments = [payment_factory(payment_id=1, amount='39.98')]
        OrderContents(cart_order, variant_repository=MagicMock(spec=VariantRepository)).add(11, 10)

        with pytest.raises(TransitionError):
            checkout.complete(cart_order)

        assert cart_order.state == 'cart'
        assert cart_order.completed_at is None
        assert cart_order.payments[0].state == 'checkout'


class TestUpdate:

    def test_update_applies_attributes_then_advances(self, checkout, repository, addressed_order):
        addressed_order.state = 'payment'
        addressed_order.recalculate_totals()

        checkout.update(addressed_order, OrderUpdate(payments_attributes=[{'payment_method_id': 1}]))

        assert addressed_order.state == 'confirm'
        assert addressed_order.payments[0].amount == Decimal('39.98')
        # one write for the attributes, one for the transition
        assert repository.save.call_count == 2
