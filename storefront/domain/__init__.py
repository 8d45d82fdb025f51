"""
Domain Layer - Business Entities

Pydantic models for the storefront entities. Repositories return them,
services mutate them, routers serialize them with to_dict().
"""
from storefront.domain.product import Product, Variant, Image, OptionValue, TaxonSummary
from storefront.domain.catalog import Taxon
from storefront.domain.order import Order, LineItem, Payment, Shipment, ShippingRate, Address
from storefront.domain.user import User, UserAddress
from storefront.domain.reference import Country, State, PaymentMethod, ShippingMethod, Store, Rating

__all__ = [
    'Product', 'Variant', 'Image', 'OptionValue', 'TaxonSummary',
    'Taxon',
    'Order', 'LineItem', 'Payment', 'Shipment', 'ShippingRate', 'Address',
    'User', 'UserAddress',
    'Country', 'State', 'PaymentMethod', 'ShippingMethod', 'Store', 'Rating',
]
