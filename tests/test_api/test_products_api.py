"""
API tests for catalog endpoints and the API key gate

Repositories are patched, so no database is needed.
"""
from unittest.mock import patch

from storefront.domain.product import Product


def make_product(product_row, variant):
    master = variant.model_copy(update={'id': 10, 'is_master': True, 'sku': 'TSHIRT'})
    return Product(**product_row, master=master, variants=[variant])


class TestApiKeyGate:

    def test_public_endpoint_without_key(self, client):
        with patch('storefront.api.products.ProductRepository') as repo:
            repo.return_value.find_available.return_value = ([], 0)

            response = client.get('/api/products')

        assert response.status_code == 200
        assert response.json() == {
            'products': [],
            'pagination': {'current_page': 1, 'total_pages': 0, 'total_count': 0},
        }

    def test_protected_endpoint_without_key(self, client):
        response = client.get('/api/cart')

        assert response.status_code == 401
        assert response.json() == {'error': 'You must specify an API key.'}

    def test_protected_endpoint_with_unknown_key(self, client):
        with patch('storefront.core.auth.UserRepository') as users:
            users.return_value.find_by_api_key.return_value = None

            response = client.get('/api/cart', headers={'Authorization': 'Bearer nope'})

        assert response.status_code == 401
        assert response.json() == {'error': 'The API key you provided is invalid.'}

    def test_public_endpoint_with_unknown_key(self, client):
        with patch('storefront.core.auth.UserRepository') as users, \
                patch('storefront.api.products.ProductRepository') as repo:
            users.return_value.find_by_api_key.return_value = None
            repo.return_value.find_available.return_value = ([], 0)

            response = client.get('/api/products', headers={'X-Storefront-Token': 'nope'})

        assert response.status_code == 200

    def test_key_from_query_parameter(self, client, customer):
        with patch('storefront.core.auth.UserRepository') as users, \
                patch('storefront.api.users.UserRepository') as user_repo, \
                patch('storefront.api.users.OrderRepository') as order_repo:
            users.return_value.find_by_api_key.return_value = customer
            user_repo.return_value.order_stats.return_value = {'orders_count': 0, 'total_spent': 0}
            user_repo.return_value.find_addresses.return_value = []
            order_repo.return_value.find_for_user.return_value = []

            response = client.get('/api/profile?token=key-7')

        assert response.status_code == 200
        assert response.json()['user']['email'] == 'buyer@example.com'
        users.return_value.find_by_api_key.assert_called_once_with('key-7')


class TestProductsApi:

    def test_list_is_cached(self, client, product_row, variant):
        with patch('storefront.api.products.ProductRepository') as repo:
            repo.return_value.find_available.return_value = ([make_product(product_row, variant)], 1)

            first = client.get('/api/products?per_page=6')
            second = client.get('/api/products?per_page=6')

        assert first.json() == second.json()
        assert first.json()['products'][0]['price'] == 19.99
        repo.return_value.find_available.assert_called_once()

    def test_show_by_slug(self, client, product_row, variant):
        with patch('storefront.api.products.ProductRepository') as repo, \
                patch('storefront.api.products.RatingRepository') as ratings:
            repo.return_value.find_by_id_or_slug.return_value = make_product(product_row, variant)
            ratings.return_value.find_for_product.return_value = []

            response = client.get('/api/products/ruby-t-shirt')

        assert response.status_code == 200
        data = response.json()
        assert data['slug'] == 'ruby-t-shirt'
        assert [v['sku'] for v in data['variants_including_master']] == ['TSHIRT', 'TSHIRT-M']
        assert data['ratings'] == []

    def test_show_missing_product(self, client):
        with patch('storefront.api.products.ProductRepository') as repo:
            repo.return_value.find_by_id_or_slug.return_value = None

            response = client.get('/api/products/missing')

        assert response.status_code == 404
        assert response.json() == {'error': 'Product not found'}

    def test_variants_exclude_master(self, client, product_row, variant):
        with patch('storefront.api.products.ProductRepository') as repo, \
                patch('storefront.api.products.VariantRepository') as variants:
            repo.return_value.find_by_id_or_slug.return_value = make_product(product_row, variant)
            variants.return_value.find_by_product.return_value = [variant]

            response = client.get('/api/products/1/variants')

        assert response.status_code == 200
        variants.return_value.find_by_product.assert_called_once_with(1, include_master=False)
