"""
Order aggregate tables: orders, line items, payments, shipments, addresses
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, DECIMAL, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.core.database import Base


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255))
    address1 = Column(String(255))
    address2 = Column(String(255))
    city = Column(String(100))
    zipcode = Column(String(20))
    phone = Column(String(50))
    state_id = Column(Integer, ForeignKey("states.id"))
    country_id = Column(Integer, ForeignKey("countries.id"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(32), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    store_id = Column(Integer, ForeignKey("stores.id"))
    email = Column(String(255))
    state = Column(String(50), nullable=False, default="cart", index=True)
    special_instructions = Column(Text)

    # Totals (derived from the aggregate on every save)
    item_total = Column(DECIMAL(10, 2), nullable=False, default=0)
    adjustment_total = Column(DECIMAL(10, 2), nullable=False, default=0)
    shipment_total = Column(DECIMAL(10, 2), nullable=False, default=0)
    payment_total = Column(DECIMAL(10, 2), nullable=False, default=0)
    total = Column(DECIMAL(10, 2), nullable=False, default=0)
    item_count = Column(Integer, nullable=False, default=0)

    payment_state = Column(String(50))
    shipment_state = Column(String(50))
    currency = Column(String(3), nullable=False, default="USD")

    bill_address_id = Column(Integer, ForeignKey("addresses.id"))
    ship_address_id = Column(Integer, ForeignKey("addresses.id"))

    completed_at = Column(DateTime(timezone=True), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    line_items = relationship("LineItem", cascade="all, delete-orphan")
    payments = relationship("Payment", cascade="all, delete-orphan")
    shipments = relationship("Shipment", cascade="all, delete-orphan")


class LineItem(Base):
    __tablename__ = "line_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("variants.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_method_id = Column(Integer, ForeignKey("payment_methods.id"), nullable=False)
    amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    state = Column(String(50), nullable=False, default="checkout", index=True)
    number = Column(String(32), unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Shipment(Base):
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(String(32), unique=True)
    state = Column(String(50), nullable=False, default="pending")
    cost = Column(DECIMAL(10, 2), nullable=False, default=0)
    shipped_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    shipping_rates = relationship("ShippingRate", cascade="all, delete-orphan")


class ShippingRate(Base):
    __tablename__ = "shipping_rates"

    id = Column(Integer, primary_key=True, index=True)
    shipment_id = Column(Integer, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    shipping_method_id = Column(Integer, ForeignKey("shipping_methods.id"), nullable=False)
    cost = Column(DECIMAL(10, 2), nullable=False, default=0)
    selected = Column(Boolean, nullable=False, default=False)


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, index=True)
    line_item_id = Column(Integer, ForeignKey("line_items.id", ondelete="SET NULL"), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    rating = Column(Integer, nullable=False, default=0)
    comment = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
