"""
Accounts and reference tables
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey, Table
from sqlalchemy.sql import func
from storefront.core.database import Base


role_users = Table(
    "role_users",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    encrypted_password = Column(String(255), nullable=False)
    api_key = Column(String(64), unique=True)
    firstname = Column(String(100))
    lastname = Column(String(100))
    phone_number = Column(String(20), index=True)

    # Email confirmation
    confirmation_token = Column(String(64), unique=True)
    confirmation_sent_at = Column(DateTime(timezone=True))
    confirmed_at = Column(DateTime(timezone=True))

    # Phone verification
    phone_verified = Column(Boolean, nullable=False, default=False)
    phone_verification_token = Column(String(16))
    phone_verification_sent_at = Column(DateTime(timezone=True))

    # Password recovery
    reset_password_token = Column(String(64), unique=True)
    reset_password_sent_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)


class UserAddress(Base):
    __tablename__ = "user_addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="CASCADE"), nullable=False)
    default = Column(Boolean, nullable=False, default=False)
    default_billing = Column(Boolean, nullable=False, default=False)


class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, index=True)
    iso = Column(String(2), nullable=False, unique=True)
    iso3 = Column(String(3))
    name = Column(String(100), nullable=False)
    states_required = Column(Boolean, nullable=False, default=False)


class State(Base):
    __tablename__ = "states"

    id = Column(Integer, primary_key=True, index=True)
    country_id = Column(Integer, ForeignKey("countries.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    abbr = Column(String(10))


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="check")
    description = Column(Text)
    active = Column(Boolean, nullable=False, default=True)
    available_to_users = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, default=0)


class ShippingMethod(Base):
    __tablename__ = "shipping_methods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50))
    carrier = Column(String(100))
    service_level = Column(String(100))
    cost = Column(DECIMAL(10, 2), nullable=False, default=0)
    available_to_users = Column(Boolean, nullable=False, default=True)


class Store(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    url = Column(String(255))
    code = Column(String(50), unique=True)
    default = Column(Boolean, nullable=False, default=False)
    default_currency = Column(String(3))
    mail_from_address = Column(String(255))
    hero_image_url = Column(Text)
