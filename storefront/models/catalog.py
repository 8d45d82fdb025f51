"""
Catalog tables: products, variants, options, images, taxons, properties
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.core.database import Base


products_taxons = Table(
    "products_taxons",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("taxon_id", Integer, ForeignKey("taxons.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("position", Integer, default=0),
)

option_values_variants = Table(
    "option_values_variants",
    Base.metadata,
    Column("variant_id", Integer, ForeignKey("variants.id", ondelete="CASCADE"), primary_key=True),
    Column("option_value_id", Integer, ForeignKey("option_values.id", ondelete="CASCADE"), primary_key=True),
)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text)

    # Availability window + soft delete
    available_on = Column(DateTime(timezone=True), index=True)
    discontinue_on = Column(DateTime(timezone=True))
    deleted_at = Column(DateTime(timezone=True), index=True)

    meta_description = Column(Text)
    meta_keywords = Column(String(255))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship("Variant", back_populates="product", cascade="all, delete-orphan")
    taxons = relationship("Taxon", secondary=products_taxons, back_populates="products")
    product_properties = relationship("ProductProperty", cascade="all, delete-orphan")


class Variant(Base):
    __tablename__ = "variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(100), nullable=False, default="", index=True)
    is_master = Column(Boolean, nullable=False, default=False)

    price = Column(DECIMAL(10, 2))
    currency = Column(String(3), nullable=False, default="USD")
    weight = Column(DECIMAL(8, 2))

    track_inventory = Column(Boolean, nullable=False, default=True)
    count_on_hand = Column(Integer, nullable=False, default=0)

    position = Column(Integer, default=0)
    deleted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="variants")
    images = relationship("Image", cascade="all, delete-orphan")
    option_values = relationship("OptionValue", secondary=option_values_variants)


class OptionType(Base):
    __tablename__ = "option_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    presentation = Column(String(100))
    position = Column(Integer, default=0)


class OptionValue(Base):
    __tablename__ = "option_values"

    id = Column(Integer, primary_key=True, index=True)
    option_type_id = Column(Integer, ForeignKey("option_types.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    presentation = Column(String(100))
    position = Column(Integer, default=0)


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("variants.id", ondelete="CASCADE"), index=True)
    alt = Column(Text)
    position = Column(Integer, default=0)
    url = Column(Text)
    thumb_url = Column(Text)


class Taxon(Base):
    """Category tree; permalink is the path, e.g. categories/shoes"""
    __tablename__ = "taxons"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("taxons.id"), index=True)
    name = Column(String(255), nullable=False, index=True)
    permalink = Column(String(255), unique=True)
    description = Column(Text)
    position = Column(Integer, default=0)
    attachment_url = Column(Text)

    products = relationship("Product", secondary=products_taxons, back_populates="taxons")


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    presentation = Column(String(255))


class ProductProperty(Base):
    __tablename__ = "product_properties"
    __table_args__ = (UniqueConstraint("product_id", "property_id"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    value = Column(Text)
