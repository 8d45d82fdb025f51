"""
API tests for cart, order, line item and checkout endpoints

The signed-in user is injected through dependency_overrides; order lookups
and persistence are patched.
"""
import pytest
from unittest.mock import patch

from storefront.core.cache import catalog_cache
from storefront.core.order_mutex import order_mutex


@pytest.fixture
def order_repository():
    with patch('storefront.services.order_updater.OrderRepository') as repo_class:
        yield repo_class.return_value


@pytest.fixture
def signed_in(client, sign_in, customer):
    sign_in(customer)
    return client


@pytest.fixture
def stored_order(cart_order):
    """Every order lookup, before and under the lock, returns cart_order"""
    with patch('storefront.services.cart_service.OrderRepository') as repo_class:
        repo = repo_class.return_value
        repo.find_by_id_or_number.return_value = cart_order
        repo.find_incomplete_for_user.return_value = cart_order
        repo.find_by_id.return_value = cart_order
        yield repo


class TestCartApi:

    def test_add_item_saves_once(self, signed_in, stored_order, order_repository, cart_order):
        response = signed_in.post('/api/cart/add_item', json={'variant_id': 11, 'quantity': 1})

        assert response.status_code == 200
        data = response.json()
        assert data['line_items'][0]['quantity'] == 3
        assert data['item_total'] == 59.97
        order_repository.save.assert_called_once_with(cart_order)
        assert not order_mutex.is_locked(cart_order.id)

    def test_add_item_while_order_is_locked(self, signed_in, stored_order, order_repository, cart_order):
        order_mutex.acquire(cart_order.id)

        response = signed_in.post('/api/cart/add_item', json={'variant_id': 11})

        assert response.status_code == 409
        order_repository.save.assert_not_called()
        assert cart_order.line_items[0].quantity == 2

    def test_empty_cart(self, signed_in, stored_order, order_repository, cart_order):
        response = signed_in.delete('/api/cart/empty')

        assert response.json() == {'message': 'Cart emptied successfully'}
        assert cart_order.line_items == []


class TestOrdersApi:

    def test_show_order(self, signed_in, stored_order):
        response = signed_in.get('/api/orders/R100000001')

        assert response.status_code == 200
        assert response.json()['number'] == 'R100000001'
        stored_order.find_by_id_or_number.assert_called_once_with('R100000001')

    def test_update_order_locked(self, signed_in, stored_order, order_repository, cart_order):
        order_mutex.acquire(cart_order.id)

        response = signed_in.put('/api/orders/R100000001', json={'order': {'email': 'x@example.com'}})

        assert response.status_code == 409
        assert cart_order.email == 'buyer@example.com'

    def test_update_order_removes_line_item(self, signed_in, stored_order, order_repository, cart_order):
        response = signed_in.put('/api/orders/R100000001', json={
            'order': {'line_items_attributes': [{'id': 501, '_destroy': True}]}
        })

        assert response.status_code == 200
        assert response.json()['line_items'] == []
        order_repository.save.assert_called_once()

    def test_shipping_methods_need_shipments(self, signed_in, stored_order):
        response = signed_in.get('/api/orders/R100000001/available_shipping_methods')

        assert response.status_code == 422
        assert 'errors' in response.json()

    def test_other_users_order_is_forbidden(self, signed_in, cart_order):
        cart_order.user_id = 99
        with patch('storefront.services.cart_service.OrderRepository') as repo:
            repo.return_value.find_by_id_or_number.return_value = cart_order

            response = signed_in.get('/api/orders/R100000001')

        assert response.status_code == 403

    def test_admin_sees_any_order(self, client, sign_in, admin, cart_order):
        sign_in(admin)
        with patch('storefront.services.cart_service.OrderRepository') as repo:
            repo.return_value.find_by_id_or_number.return_value = cart_order

            response = client.get('/api/orders/100')

        assert response.status_code == 200

    def test_missing_order(self, signed_in):
        with patch('storefront.services.cart_service.OrderRepository') as repo:
            repo.return_value.find_by_id_or_number.return_value = None

            response = signed_in.get('/api/orders/R000000000')

        assert response.status_code == 404
        assert response.json() == {'error': 'Order not found'}


class TestReviewProduct:

    def test_review_invalidates_product_cache(self, signed_in, stored_order):
        catalog_cache.set('products_show_1', {'id': 1})
        catalog_cache.set('categories_index', [])

        with patch('storefront.api.orders.RatingRepository') as ratings:
            response = signed_in.post('/api/orders/R100000001/review_product', json={
                'lineItemId': 501, 'rating': 5, 'comment': 'Great shirt',
            })

        assert response.status_code == 201
        assert response.json() == {'message': 'Rating submitted successfully'}
        rating = ratings.return_value.create.call_args[0][0]
        assert rating.line_item_id == 501
        assert rating.user_id == 7
        assert catalog_cache.get('products_show_1') is None
        assert catalog_cache.get('categories_index') == []

    def test_rating_out_of_range(self, signed_in, stored_order):
        with patch('storefront.api.orders.RatingRepository') as ratings:
            response = signed_in.post('/api/orders/R100000001/review_product', json={
                'lineItemId': 501, 'rating': 9,
            })

        assert response.status_code == 422
        assert response.json() == {'errors': ['Rating must be between 0 and 5']}
        ratings.return_value.create.assert_not_called()

    def test_line_item_of_another_order(self, signed_in, stored_order):
        response = signed_in.post('/api/orders/R100000001/review_product', json={
            'lineItemId': 999, 'rating': 4,
        })

        assert response.status_code == 404


class TestLineItemsApi:

    def test_create_requires_variant(self, signed_in, stored_order):
        response = signed_in.post('/api/orders/R100000001/line_items', json={'line_item': {'quantity': 1}})

        assert response.status_code == 422
        assert response.json() == {'errors': ["Variant can't be blank"]}

    def test_update_to_zero_returns_no_content(self, signed_in, stored_order, order_repository, cart_order):
        response = signed_in.put('/api/orders/R100000001/line_items/501', json={'line_item': {'quantity': 0}})

        assert response.status_code == 204
        assert cart_order.line_items == []

    def test_delete(self, signed_in, stored_order, order_repository):
        response = signed_in.delete('/api/orders/R100000001/line_items/501')

        assert response.status_code == 204
        order_repository.save.assert_called_once()

    def test_change_uses_order_loaded_under_lock(self, signed_in, stored_order, order_repository, cart_order):
        stale = cart_order.model_copy(deep=True)
        stored_order.find_by_id_or_number.return_value = stale

        response = signed_in.delete('/api/orders/R100000001/line_items/501')

        assert response.status_code == 204
        order_repository.save.assert_called_once_with(cart_order)
        assert cart_order.line_items == []
        assert len(stale.line_items) == 1

    def test_change_after_checkout_started_restarts_it(self, signed_in, stored_order, order_repository, cart_order):
        cart_order.state = 'confirm'

        response = signed_in.put('/api/orders/R100000001/line_items/501', json={'line_item': {'quantity': 3}})

        assert response.status_code == 200
        assert response.json()['quantity'] == 3
        assert cart_order.state == 'cart'


class TestCheckoutsApi:

    def test_next_from_cart(self, signed_in, stored_order, order_repository):
        response = signed_in.put('/api/checkouts/R100000001/next')

        assert response.status_code == 200
        assert response.json()['state'] == 'address'

    def test_next_with_unmet_requirement(self, signed_in, stored_order, order_repository, cart_order):
        cart_order.state = 'address'

        response = signed_in.put('/api/checkouts/R100000001/next')

        assert response.status_code == 422
        assert response.json() == {'errors': ["Bill address can't be blank"]}

    def test_complete_outside_confirm(self, signed_in, stored_order, order_repository):
        response = signed_in.put('/api/checkouts/R100000001/complete')

        assert response.status_code == 422
        assert response.json() == {'errors': ['Cannot complete an order in state cart']}


def test_new_order_is_created_for_user(signed_in, customer):
    with patch('storefront.services.cart_service.ReferenceRepository') as reference, \
            patch('storefront.services.cart_service.OrderRepository') as repo:
        reference.return_value.find_default_store.return_value = None

        response = signed_in.post('/api/orders')

    assert response.status_code == 201
    data = response.json()
    assert data['user_id'] == 7
    assert data['email'] == 'buyer@example.com'
    assert data['currency'] == 'USD'
    repo.return_value.save.assert_called_once()
