"""
Unit tests for OrderSaver and OrderUpdater

The repository is a mock: these tests check how many times the order is
written and what the aggregate looks like when it is.
"""
import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from storefront.core.errors import ValidationFailed, NotFoundError
from storefront.domain.order import OrderUpdate
from storefront.domain.product import Variant
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.repositories.variant_repository import VariantRepository
from storefront.services.order_updater import OrderSaver, OrderUpdater


class RecordingSaver(OrderSaver):
    """OrderSaver that remembers what every save() call returned"""

    def __init__(self, repository):
        super().__init__(repository)
        self.results = []

    def save(self, order):
        result = super().save(order)
        self.results.append(result)
        return result


@pytest.fixture
def repository():
    return MagicMock(spec=OrderRepository)


@pytest.fixture
def reference_repository(check_method, store_credit_method):
    repo = MagicMock(spec=ReferenceRepository)
    methods = {check_method.id: check_method, store_credit_method.id: store_credit_method}
    repo.find_payment_method.side_effect = methods.get
    return repo


@pytest.fixture
def variant_repository():
    return MagicMock(spec=VariantRepository)


@pytest.fixture
def updater(repository, reference_repository, variant_repository):
    return OrderUpdater(
        saver=OrderSaver(repository),
        reference_repository=reference_repository,
        variant_repository=variant_repository,
    )


class TestOrderSaver:
    """Test the single persistence routine"""

    def test_save_writes_order_once(self, repository, cart_order):
        """A plain save validates, recalculates and writes once"""
        saver = OrderSaver(repository)

        assert saver.save(cart_order) is True

        repository.save.assert_called_once_with(cart_order)
        assert cart_order.item_total == Decimal('39.98')
        assert cart_order.is_saving is False

    def test_new_payment_invalidates_checkout_siblings_without_reentering(
        self, repository, cart_order, payment_factory
    ):
        """The sibling's save hook asks for an order save; that nested request is skipped"""
        old = payment_factory(payment_id=1)
        new = payment_factory()
        cart_order.payments = [old, new]
        saver = RecordingSaver(repository)

        saver.save(cart_order)

        assert old.state == 'invalid'
        assert new.state == 'checkout'
        # nested call from the payment hook first, then the outer call
        assert saver.results == [False, True]
        repository.save.assert_called_once()

    def test_new_store_credit_payment_keeps_siblings(self, repository, cart_order, payment_factory):
        old = payment_factory(payment_id=1)
        credit = payment_factory(method_type='store_credit')
        cart_order.payments = [old, credit]

        OrderSaver(repository).save(cart_order)

        assert old.state == 'checkout'

    def test_store_credit_siblings_are_not_invalidated(self, repository, cart_order, payment_factory):
        credit = payment_factory(payment_id=1, method_type='store_credit')
        completed = payment_factory(payment_id=2, state='completed')
        new = payment_factory()
        cart_order.payments = [credit, completed, new]

        OrderSaver(repository).save(cart_order)

        assert credit.state == 'checkout'
        assert completed.state == 'completed'

    def test_failed_new_payment_does_not_invalidate(self, repository, cart_order, payment_factory):
        old = payment_factory(payment_id=1)
        failed = payment_factory(state='failed')
        cart_order.payments = [old, failed]

        OrderSaver(repository).save(cart_order)

        assert old.state == 'checkout'

    def test_existing_payments_do_not_run_callbacks(self, repository, cart_order, payment_factory):
        """Only payments created in this save replace their siblings"""
        first = payment_factory(payment_id=1)
        second = payment_factory(payment_id=2)
        cart_order.payments = [first, second]

        OrderSaver(repository).save(cart_order)

        assert first.state == 'checkout'
        assert second.state == 'checkout'

    def test_guard_released_after_failed_save(self, repository, cart_order):
        """A save that raised leaves the order saveable"""
        repository.save.side_effect = [RuntimeError("connection lost"), cart_order]
        saver = OrderSaver(repository)

        with pytest.raises(RuntimeError):
            saver.save(cart_order)

        assert cart_order.is_saving is False
        assert saver.save(cart_order) is True
        assert repository.save.call_count == 2

    def test_validation_errors_are_raised_and_nothing_is_written(self, repository, cart_order):
        cart_order.email = 'not-an-email'

        with pytest.raises(ValidationFailed) as exc_info:
            OrderSaver(repository).save(cart_order)

        assert exc_info.value.errors == ["Email is invalid"]
        repository.save.assert_not_called()
        assert cart_order.is_saving is False

    def test_nested_save_is_skipped(self, repository, cart_order):
        saver = OrderSaver(repository)

        with cart_order.save_guard():
            assert saver.save(cart_order) is False

        repository.save.assert_not_called()


class TestOrderUpdater:
    """Test nested attribute updates"""

    def test_update_saves_once_for_all_nested_changes(
        self, updater, repository, cart_order, payment_factory, variant_repository
    ):
        """Email, line items and several payments in one call: one write"""
        cart_order.payments = [payment_factory(payment_id=1)]
        variant_repository.find_by_id.return_value = Variant(id=12, product_id=1, sku='MUG', price=Decimal('5.00'))

        updater.update(cart_order, OrderUpdate(**{
            'email': 'new@example.com',
            'line_items_attributes': [
                {'id': 501, 'quantity': 3},
                {'variant_id': 12, 'quantity': 2},
            ],
            'payments_attributes': [
                {'payment_method_id': 1},
                {'payment_method_id': 1, 'amount': '1.00'},
            ],
        }))

        repository.save.assert_called_once_with(cart_order)
        assert cart_order.email == 'new@example.com'
        assert [p.state for p in cart_order.payments] == ['invalid', 'invalid', 'checkout']
        assert cart_order.item_total == Decimal('69.97')

    def test_payment_amount_defaults_to_outstanding_balance(self, updater, cart_order):
        updater.update(cart_order, OrderUpdate(payments_attributes=[{'payment_method_id': 1}]))

        payment = cart_order.payments[-1]
        assert payment.amount == Decimal('39.98')
        assert payment.payment_method_name == 'Check'
        assert payment.payment_method_type == 'check'

    def test_unknown_payment_method(self, updater, repository, cart_order):
        with pytest.raises(NotFoundError):
            updater.update(cart_order, OrderUpdate(payments_attributes=[{'payment_method_id': 99}]))

        repository.save.assert_not_called()

    def test_quantity_zero_removes_line_item(self, updater, repository, cart_order):
        updater.update(cart_order, OrderUpdate(line_items_attributes=[{'id': 501, 'quantity': 0}]))

        assert cart_order.line_items == []
        assert cart_order.removed_line_item_ids == {501}
        assert cart_order.total == Decimal('0')
        repository.save.assert_called_once()

    def test_destroy_flag_removes_line_item(self, updater, cart_order):
        updater.update(cart_order, OrderUpdate(line_items_attributes=[{'id': 501, '_destroy': True}]))

        assert cart_order.line_items == []

    def test_unknown_line_item(self, updater, cart_order):
        with pytest.raises(NotFoundError):
            updater.update(cart_order, OrderUpdate(line_items_attributes=[{'id': 999, 'quantity': 1}]))

    def test_use_billing_copies_bill_address(self, updater, cart_order, address):
        updater.update(cart_order, OrderUpdate(
            bill_address=address.model_dump(exclude={'id', 'state_name', 'country_name'}),
            use_billing=True,
        ))

        assert cart_order.ship_address.same_as(cart_order.bill_address)
        assert cart_order.ship_address is not cart_order.bill_address

    def test_unchanged_address_keeps_its_row(self, updater, cart_order, address):
        cart_order.bill_address = address.model_copy(update={'id': 40})

        updater.update(cart_order, OrderUpdate(
            bill_address=address.model_dump(exclude={'id', 'state_name', 'country_name'}),
        ))

        assert cart_order.bill_address.id == 40

    def test_changed_address_becomes_new_row(self, updater, cart_order, address):
        cart_order.bill_address = address.model_copy(update={'id': 40})
        changed = address.model_dump(exclude={'id', 'state_name', 'country_name'})
        changed['city'] = 'Shelbyville'

        updater.update(cart_order, OrderUpdate(bill_address=changed))

        assert cart_order.bill_address.id is None
        assert cart_order.bill_address.city == 'Shelbyville'

    def test_incomplete_address_is_rejected(self, updater, repository, cart_order):
        with pytest.raises(ValidationFailed) as exc_info:
            updater.update(cart_order, OrderUpdate(bill_address={'name': 'Jane'}))

        assert "Bill address address1 can't be blank" in exc_info.value.errors
        repository.save.assert_not_called()

    def test_shipping_method_needs_a_shipment(self, updater, cart_order):
        with pytest.raises(ValidationFailed):
            updater.update(cart_order, OrderUpdate(shipping_method_id=1))
