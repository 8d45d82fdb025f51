"""
Catalog Domain Models

Products, their purchasable variants, images and option values.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime, timezone
from decimal import Decimal


class Image(BaseModel):
    """Product/variant image"""

    id: int = Field(..., description="Image ID")
    variant_id: Optional[int] = Field(None, description="Variant the image belongs to")
    alt: Optional[str] = Field(None, description="Alternative text")
    position: int = Field(0, description="Sort position")
    url: Optional[str] = Field(None, description="Public URL of the original")
    thumb_url: Optional[str] = Field(None, description="Public URL of the 200x200 thumbnail")

    model_config = ConfigDict(from_attributes=True)


class OptionValue(BaseModel):
    """Option value of a variant, e.g. size=M"""

    id: int
    option_type_id: int
    option_type_name: Optional[str] = None
    option_type_presentation: Optional[str] = None
    name: str
    presentation: Optional[str] = None
    position: int = 0

    model_config = ConfigDict(from_attributes=True)


class Variant(BaseModel):
    """
    Variant domain model - purchasable SKU of a product

    Every product has one master variant (is_master=True) that carries the
    default price; the other variants are the option combinations.
    """

    id: int = Field(..., description="Variant ID")
    product_id: int = Field(..., description="Parent product ID")
    sku: str = Field("", description="Stock Keeping Unit")
    is_master: bool = Field(False, description="Whether this is the product's master variant")
    price: Optional[Decimal] = Field(None, description="Price in currency", ge=0)
    currency: str = Field("USD", description="ISO currency code")
    weight: Optional[Decimal] = Field(None, description="Weight", ge=0)
    track_inventory: bool = Field(True, description="Whether stock is tracked")
    count_on_hand: int = Field(0, description="Units in stock")
    position: int = Field(0, description="Sort position")
    deleted_at: Optional[datetime] = None

    product_name: Optional[str] = Field(None, description="Product name (from JOIN)")
    option_values: List[OptionValue] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def in_stock(self) -> bool:
        return not self.track_inventory or self.count_on_hand > 0

    @property
    def options_text(self) -> str:
        """Human readable option summary, e.g. "Size: M, Color: Red" """
        return ", ".join(
            f"{ov.option_type_presentation or ov.option_type_name}: {ov.presentation or ov.name}"
            for ov in self.option_values
        )

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['in_stock'] = self.in_stock
        data['options_text'] = self.options_text
        for field in ['price', 'weight']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        return data


class TaxonSummary(BaseModel):
    """Taxon reference embedded in product payloads"""

    id: int
    name: str
    permalink: Optional[str] = None
    parent_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ProductProperty(BaseModel):
    name: str
    value: Optional[str] = None


class Product(BaseModel):
    """
    Product domain model - a catalog item

    Fields:
        id: Internal product ID
        name: Product name
        slug: URL slug, unique (products can be looked up by id or slug)
        description: Long description
        available_on: Product is hidden before this time
        discontinue_on: Product is hidden from this time on
        deleted_at: Soft delete marker

        master: Master variant (default price, SKU and images)
        variants: Non-master variants
        images: Images of all variants
        taxons: Categories the product belongs to
        properties: Product properties (name/value)

        average_rating: Average of ratings on line items of this product
        ratings_count: Number of ratings
    """

    id: int = Field(..., description="Product ID")
    name: str = Field(..., description="Product name")
    slug: str = Field(..., description="URL slug")
    description: Optional[str] = Field(None, description="Product description")
    available_on: Optional[datetime] = Field(None, description="Available from")
    discontinue_on: Optional[datetime] = Field(None, description="Discontinued from")
    deleted_at: Optional[datetime] = Field(None, description="Soft delete timestamp")
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    master: Optional[Variant] = None
    variants: List[Variant] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    taxons: List[TaxonSummary] = Field(default_factory=list)
    properties: List[ProductProperty] = Field(default_factory=list)

    average_rating: Optional[float] = None
    ratings_count: int = 0

    model_config = ConfigDict(from_attributes=True)

    @property
    def price(self) -> Optional[Decimal]:
        """Display price: the master variant's price"""
        return self.master.price if self.master else None

    @property
    def variants_including_master(self) -> List[Variant]:
        return ([self.master] if self.master else []) + list(self.variants)

    def is_available(self, now: Optional[datetime] = None) -> bool:
        """Not deleted, already released and not discontinued"""
        now = now or datetime.now(timezone.utc)
        if self.deleted_at is not None:
            return False
        if self.available_on is None or _aware(self.available_on) > now:
            return False
        if self.discontinue_on is not None and _aware(self.discontinue_on) <= now:
            return False
        return True

    def grouped_option_types(self) -> List[dict]:
        """Option types used by the variants, each with its distinct values"""
        groups = {}
        for variant in self.variants:
            for ov in variant.option_values:
                group = groups.setdefault(ov.option_type_id, {
                    'id': ov.option_type_id,
                    'name': ov.option_type_name,
                    'presentation': ov.option_type_presentation,
                    'option_values': {},
                })
                group['option_values'][ov.id] = ov.model_dump()

        return [
            {**group, 'option_values': sorted(group['option_values'].values(), key=lambda v: v['position'])}
            for group in groups.values()
        ]

    def to_dict(self) -> dict:
        data = self.model_dump(exclude={'master', 'variants'})
        data['price'] = float(self.price) if self.price is not None else None
        data['master'] = self.master.to_dict() if self.master else None
        data['variants'] = [variant.to_dict() for variant in self.variants]
        return data

    def to_detail_dict(self) -> dict:
        """Detail payload: adds all variants and grouped option types"""
        data = self.to_dict()
        data['variants_including_master'] = [v.to_dict() for v in self.variants_including_master]
        data['option_types'] = self.grouped_option_types()
        return data


def _aware(value: datetime) -> datetime:
    """Treat naive timestamps from the database as UTC"""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
