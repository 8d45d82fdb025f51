"""
Pytest fixtures and configuration for Storefront tests

This file provides shared fixtures that can be used across all test modules.
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from storefront.core.cache import catalog_cache
from storefront.core.order_mutex import order_mutex
from storefront.domain.order import Order, LineItem, Payment, Address
from storefront.domain.product import Variant
from storefront.domain.reference import PaymentMethod, ShippingMethod
from storefront.domain.user import User


@pytest.fixture(autouse=True)
def reset_process_state(monkeypatch):
    """Cache and order locks are process-wide; start every test empty"""
    # No database in unit tests: order locks stay in-process
    monkeypatch.setattr(order_mutex, "advisory_lock", None)
    catalog_cache.clear()
    yield
    catalog_cache.clear()
    order_mutex._held.clear()


@pytest.fixture
def mock_db():
    """
    Provides a (connection, cursor) pair of MagicMocks

    Usage:
        @patch('storefront.repositories.x.get_db_connection_dict')
        def test_...(self, mock_get_conn, mock_db):
            conn, cursor = mock_db
            mock_get_conn.return_value = conn
    """
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value = cursor
    return conn, cursor


@pytest.fixture
def variant_row():
    """Variant row as returned by the VARIANT_COLUMNS select"""
    return {
        'id': 11,
        'product_id': 1,
        'sku': 'TSHIRT-M',
        'is_master': False,
        'price': Decimal('19.99'),
        'currency': 'USD',
        'weight': Decimal('0.20'),
        'track_inventory': True,
        'count_on_hand': 5,
        'position': 1,
        'deleted_at': None,
        'product_name': 'Ruby T-Shirt',
    }


@pytest.fixture
def product_row():
    return {
        'id': 1,
        'name': 'Ruby T-Shirt',
        'slug': 'ruby-t-shirt',
        'description': 'Soft cotton tee',
        'available_on': datetime(2025, 1, 1, tzinfo=timezone.utc),
        'discontinue_on': None,
        'deleted_at': None,
        'meta_description': None,
        'meta_keywords': None,
        'created_at': datetime(2025, 1, 1, tzinfo=timezone.utc),
        'updated_at': None,
    }


@pytest.fixture
def variant(variant_row):
    return Variant(**variant_row)


@pytest.fixture
def customer():
    return User(id=7, email='buyer@example.com', api_key='key-7', roles=['customer'])


@pytest.fixture
def admin():
    return User(id=1, email='admin@example.com', api_key='key-admin', roles=['admin'])


@pytest.fixture
def address():
    return Address(
        name='Jane Doe',
        address1='1 Main St',
        city='Springfield',
        zipcode='12345',
        phone='+15555550100',
        country_id=1,
    )


@pytest.fixture
def cart_order(variant):
    """Persisted cart with one line item (2 x 19.99)"""
    order = Order(
        id=100,
        number='R100000001',
        user_id=7,
        email='buyer@example.com',
        line_items=[
            LineItem(id=501, order_id=100, variant_id=variant.id, quantity=2,
                     price=Decimal('19.99'), variant=variant),
        ],
    )
    order.recalculate_totals()
    return order


@pytest.fixture
def check_method():
    return PaymentMethod(id=1, name='Check', type='check')


@pytest.fixture
def store_credit_method():
    return PaymentMethod(id=2, name='Store Credit', type='store_credit')


@pytest.fixture
def shipping_methods():
    return [
        ShippingMethod(id=1, name='Ground', cost=Decimal('5.00')),
        ShippingMethod(id=2, name='Express', cost=Decimal('15.00')),
    ]


def make_payment(payment_id=None, state='checkout', method_type='check', amount='10.00'):
    return Payment(
        id=payment_id,
        order_id=100,
        payment_method_id=2 if method_type == 'store_credit' else 1,
        payment_method_type=method_type,
        amount=Decimal(amount),
        state=state,
    )


@pytest.fixture
def payment_factory():
    """make_payment(payment_id=None, state='checkout', method_type='check', amount='10.00')"""
    return make_payment


@pytest.fixture
def client():
    """TestClient for the app; dependency overrides are reset afterwards"""
    from fastapi.testclient import TestClient
    from storefront.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sign_in():
    """
    Make authenticate_request resolve to the given user

    Usage:
        def test_...(self, client, sign_in, customer):
            sign_in(customer)
    """
    from storefront.core.auth import authenticate_request
    from storefront.main import app

    def _sign_in(user):
        app.dependency_overrides[authenticate_request] = lambda: user

    return _sign_in
