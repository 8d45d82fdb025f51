"""
Database table definitions
"""
from .catalog import Product, Variant, OptionType, OptionValue, Image, Taxon, Property, ProductProperty
from .order import Address, Order, LineItem, Payment, Shipment, ShippingRate, Rating
from .user import User, Role, UserAddress, Country, State, PaymentMethod, ShippingMethod, Store

__all__ = [
    "Product", "Variant", "OptionType", "OptionValue", "Image", "Taxon", "Property", "ProductProperty",
    "Address", "Order", "LineItem", "Payment", "Shipment", "ShippingRate", "Rating",
    "User", "Role", "UserAddress", "Country", "State", "PaymentMethod", "ShippingMethod", "Store",
]
