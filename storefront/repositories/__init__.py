"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.variant_repository import VariantRepository
from storefront.repositories.category_repository import CategoryRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.user_repository import UserRepository
from storefront.repositories.reference_repository import ReferenceRepository
from storefront.repositories.rating_repository import RatingRepository

__all__ = [
    'ProductRepository',
    'VariantRepository',
    'CategoryRepository',
    'OrderRepository',
    'UserRepository',
    'ReferenceRepository',
    'RatingRepository',
]
