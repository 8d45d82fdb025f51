"""
Order Domain Models

The order aggregate: the order itself plus the line items, payments,
shipments and addresses it owns. Services mutate the aggregate in memory and
hand it to the repository to be persisted in one transaction.
"""
import re
import secrets
from contextlib import contextmanager
from pydantic import BaseModel, Field, ConfigDict, PrivateAttr
from typing import Optional, List, Set
from datetime import datetime
from decimal import Decimal

from storefront.domain.product import Variant

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CHECKOUT_STEPS = ['cart', 'address', 'delivery', 'payment', 'confirm', 'complete']

# Payment states that still count towards covering the order total
VALID_PAYMENT_STATES = {'checkout', 'pending', 'processing', 'completed'}


def generate_number(prefix: str) -> str:
    """Random public number, e.g. R123456789 for orders, H... for shipments"""
    return prefix + "".join(str(secrets.randbelow(10)) for _ in range(9))


class Address(BaseModel):
    """Postal address used for billing and shipping"""

    id: Optional[int] = None
    name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    zipcode: Optional[str] = None
    phone: Optional[str] = None
    state_id: Optional[int] = None
    country_id: Optional[int] = None
    state_name: Optional[str] = None
    country_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def validation_errors(self, label: str) -> List[str]:
        errors = []
        for field in ['name', 'address1', 'city', 'zipcode', 'country_id']:
            if not getattr(self, field):
                errors.append(f"{label} {field.replace('_id', '')} can't be blank")
        return errors

    def same_as(self, other: "Address") -> bool:
        fields = ['name', 'address1', 'address2', 'city', 'zipcode', 'phone', 'state_id', 'country_id']
        return all(getattr(self, f) == getattr(other, f) for f in fields)


class LineItem(BaseModel):
    """Quantity of a variant within an order"""

    id: Optional[int] = Field(None, description="Line item ID (None until persisted)")
    order_id: Optional[int] = None
    variant_id: int = Field(..., description="Variant ID")
    quantity: int = Field(1, description="Quantity ordered")
    price: Decimal = Field(..., description="Unit price at the time it was added", ge=0)
    currency: str = "USD"

    variant: Optional[Variant] = Field(None, description="Variant with product info (from JOIN)")

    model_config = ConfigDict(from_attributes=True)

    @property
    def amount(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = self.model_dump(exclude={'variant'})
        data['price'] = float(self.price)
        data['amount'] = float(self.amount)
        data['variant'] = self.variant.to_dict() if self.variant else None
        return data


class Payment(BaseModel):
    """
    Payment attached to an order

    States: checkout -> pending -> processing -> completed, plus failed,
    void and invalid. Only payments still in checkout can be invalidated.
    """

    id: Optional[int] = None
    order_id: Optional[int] = None
    payment_method_id: int
    payment_method_name: Optional[str] = None
    payment_method_type: Optional[str] = None
    amount: Decimal = Field(Decimal('0'), ge=0)
    state: str = "checkout"
    number: str = Field(default_factory=lambda: generate_number("P"))
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def is_store_credit(self) -> bool:
        return self.payment_method_type == 'store_credit'

    def invalidate(self) -> bool:
        """checkout -> invalid; returns False when the payment is in another state"""
        if self.state != 'checkout':
            return False
        self.state = 'invalid'
        return True

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['amount'] = float(self.amount)
        return data


class ShippingRate(BaseModel):
    id: Optional[int] = None
    shipping_method_id: int
    shipping_method_name: Optional[str] = None
    cost: Decimal = Decimal('0')
    selected: bool = False

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['cost'] = float(self.cost)
        return data


class Shipment(BaseModel):
    id: Optional[int] = None
    order_id: Optional[int] = None
    number: str = Field(default_factory=lambda: generate_number("H"))
    state: str = "pending"
    cost: Decimal = Decimal('0')
    shipped_at: Optional[datetime] = None
    shipping_rates: List[ShippingRate] = Field(default_factory=list)

    @property
    def selected_rate(self) -> Optional[ShippingRate]:
        return next((rate for rate in self.shipping_rates if rate.selected), None)

    def select_rate(self, shipping_method_id: int) -> bool:
        if not any(r.shipping_method_id == shipping_method_id for r in self.shipping_rates):
            return False
        for rate in self.shipping_rates:
            rate.selected = rate.shipping_method_id == shipping_method_id
        self.cost = self.selected_rate.cost
        return True

    def to_dict(self) -> dict:
        data = self.model_dump(exclude={'shipping_rates'})
        data['cost'] = float(self.cost)
        data['shipping_rates'] = [rate.to_dict() for rate in self.shipping_rates]
        return data


class Order(BaseModel):
    """
    Order domain model - the cart/checkout aggregate

    Money fields are derived by recalculate_totals() and stored on the order
    row so listings don't need to load line items.
    """

    id: Optional[int] = Field(None, description="Order ID (None until persisted)")
    number: str = Field(default_factory=lambda: generate_number("R"))
    user_id: Optional[int] = None
    store_id: Optional[int] = None
    email: Optional[str] = None
    state: str = "cart"
    special_instructions: Optional[str] = None

    item_total: Decimal = Decimal('0')
    adjustment_total: Decimal = Decimal('0')
    shipment_total: Decimal = Decimal('0')
    payment_total: Decimal = Decimal('0')
    total: Decimal = Decimal('0')
    item_count: int = 0

    payment_state: Optional[str] = None
    shipment_state: Optional[str] = None
    currency: str = "USD"

    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    bill_address: Optional[Address] = None
    ship_address: Optional[Address] = None
    line_items: List[LineItem] = Field(default_factory=list)
    payments: List[Payment] = Field(default_factory=list)
    shipments: List[Shipment] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    _saving: bool = PrivateAttr(default=False)
    _removed_line_item_ids: Set[int] = PrivateAttr(default_factory=set)

    # Save guard

    @contextmanager
    def save_guard(self):
        """
        Re-entrancy guard for one save of this order.

        Yields True to the outermost caller and False to any nested caller
        while that save is running. Always released on exit.
        """
        if self._saving:
            yield False
            return
        self._saving = True
        try:
            yield True
        finally:
            self._saving = False

    @property
    def is_saving(self) -> bool:
        return self._saving

    # Line items

    def find_line_item(self, line_item_id: int) -> Optional[LineItem]:
        return next((li for li in self.line_items if li.id == line_item_id), None)

    def find_line_item_by_variant(self, variant_id: int) -> Optional[LineItem]:
        return next((li for li in self.line_items if li.variant_id == variant_id), None)

    def remove_line_item(self, line_item: LineItem):
        self.line_items = [li for li in self.line_items if li is not line_item]
        if line_item.id is not None:
            self._removed_line_item_ids.add(line_item.id)

    @property
    def removed_line_item_ids(self) -> Set[int]:
        return set(self._removed_line_item_ids)

    def clear_removed_line_items(self):
        self._removed_line_item_ids.clear()

    # Totals

    def recalculate_totals(self):
        self.item_total = sum((li.amount for li in self.line_items), Decimal('0'))
        self.item_count = sum(li.quantity for li in self.line_items)
        self.shipment_total = sum((s.cost for s in self.shipments), Decimal('0'))
        self.payment_total = sum(
            (p.amount for p in self.payments if p.state == 'completed'), Decimal('0')
        )
        self.total = self.item_total + self.shipment_total + self.adjustment_total

    @property
    def covered_amount(self) -> Decimal:
        """Sum of payments that have not been invalidated, voided or failed"""
        return sum((p.amount for p in self.payments if p.state in VALID_PAYMENT_STATES), Decimal('0'))

    @property
    def outstanding_balance(self) -> Decimal:
        return self.total - self.payment_total

    @property
    def is_complete(self) -> bool:
        return self.state == 'complete'

    def validation_errors(self) -> List[str]:
        errors = []
        if self.email and not EMAIL_PATTERN.match(self.email):
            errors.append("Email is invalid")
        for li in self.line_items:
            if li.quantity < 1:
                errors.append(f"Line item quantity must be greater than 0 (variant {li.variant_id})")
        if self.bill_address:
            errors.extend(self.bill_address.validation_errors("Bill address"))
        if self.ship_address:
            errors.extend(self.ship_address.validation_errors("Ship address"))
        return errors

    def to_dict(self, include: Optional[Set[str]] = None) -> dict:
        """
        Serialize the order.

        Args:
            include: associations to embed (line_items, payments, shipments,
                     addresses); all of them when None
        """
        include = {'line_items', 'payments', 'shipments', 'addresses'} if include is None else include

        data = self.model_dump(exclude={'line_items', 'payments', 'shipments', 'bill_address', 'ship_address'})
        for field in ['item_total', 'adjustment_total', 'shipment_total', 'payment_total', 'total']:
            data[field] = float(data[field])
        data['outstanding_balance'] = float(self.outstanding_balance)

        if 'line_items' in include:
            data['line_items'] = [li.to_dict() for li in self.line_items]
        if 'payments' in include:
            data['payments'] = [p.to_dict() for p in self.payments]
        if 'shipments' in include:
            data['shipments'] = [s.to_dict() for s in self.shipments]
        if 'addresses' in include:
            data['bill_address'] = self.bill_address.model_dump() if self.bill_address else None
            data['ship_address'] = self.ship_address.model_dump() if self.ship_address else None

        return data


# Request schemas

class AddressAttributes(BaseModel):
    name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    zipcode: Optional[str] = None
    phone: Optional[str] = None
    state_id: Optional[int] = None
    country_id: Optional[int] = None


class PaymentAttributes(BaseModel):
    """New payment on the order; amount defaults to the order total not yet covered"""
    payment_method_id: int
    amount: Optional[Decimal] = Field(None, ge=0)


class LineItemAttributes(BaseModel):
    """
    Nested line item change: with id updates (quantity 0 or _destroy removes),
    without id adds variant_id
    """
    id: Optional[int] = None
    variant_id: Optional[int] = None
    quantity: Optional[int] = Field(None, ge=0)
    destroy: bool = Field(False, alias="_destroy")

    model_config = ConfigDict(populate_by_name=True)


class OrderUpdate(BaseModel):
    """Schema for updating an existing order"""
    email: Optional[str] = None
    special_instructions: Optional[str] = None
    bill_address: Optional[AddressAttributes] = None
    ship_address: Optional[AddressAttributes] = None
    use_billing: bool = False
    payments_attributes: List[PaymentAttributes] = Field(default_factory=list)
    line_items_attributes: List[LineItemAttributes] = Field(default_factory=list)
    shipping_method_id: Optional[int] = None
