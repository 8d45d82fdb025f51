"""
Reference data: geography, payment/shipping methods, stores, ratings
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class State(BaseModel):
    id: int
    country_id: int
    name: str
    abbr: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Country(BaseModel):
    id: int
    iso: str
    iso3: Optional[str] = None
    name: str
    states_required: bool = False
    states: List[State] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PaymentMethod(BaseModel):
    id: int
    name: str
    type: str = Field("check", description="check, credit_card, store_credit, ...")
    description: Optional[str] = None
    active: bool = True
    available_to_users: bool = True
    position: int = 0

    model_config = ConfigDict(from_attributes=True)


class ShippingMethod(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    carrier: Optional[str] = None
    service_level: Optional[str] = None
    cost: Decimal = Field(Decimal('0'), ge=0, description="Flat rate per shipment")
    available_to_users: bool = True

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['cost'] = float(self.cost)
        return data


class Store(BaseModel):
    id: int
    name: str
    url: Optional[str] = None
    code: Optional[str] = None
    default: bool = False
    default_currency: Optional[str] = None
    mail_from_address: Optional[str] = None
    hero_image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Rating(BaseModel):
    """1..5 score given by a user to the product of a purchased line item (0 = unrated)"""

    id: Optional[int] = None
    line_item_id: Optional[int] = None
    user_id: Optional[int] = None
    rating: int = Field(0)
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def validation_errors(self) -> List[str]:
        if not 0 <= self.rating <= 5:
            return ["Rating must be between 0 and 5"]
        return []
