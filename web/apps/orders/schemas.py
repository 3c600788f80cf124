"""Pydantic schemas for orders.

This module exposes the request validation schemas used by the orders API
and the read schema used to render orders. Field names are snake_case in
Python and camelCase on the wire.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain import OrderStatus

CENT = Decimal("0.01")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class AddressIn(CamelModel):
    """Postal address captured at checkout.

    ``street`` is accepted as a legacy alias of ``address1`` for clients
    written before the field was renamed.
    """

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    address1: str = Field(min_length=1)
    address2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(default="United States", min_length=1)
    phone: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_street(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("address1") and data.get("street"):
            data = {**data, "address1": data["street"]}
        return data


class OrderItemIn(CamelModel):
    """Input schema for a single order line item.

    Attributes:
        product_id: Catalog id (UUID or the secondary catalog id).
        name: Product name at purchase time; used in stock error messages.
        price: Unit price at purchase time.
        quantity: Positive number of units.
    """

    product_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    image: str = ""
    size: Optional[str] = None
    color: Optional[str] = None

    @field_validator("price")
    @classmethod
    def round_price(cls, v: Decimal) -> Decimal:
        return v.quantize(CENT, rounding=ROUND_HALF_UP)


class CreateOrderDTO(CamelModel):
    """Schema for creating an order.

    An empty ``items`` list passes validation here and is rejected by the
    domain service with its own message.
    """

    items: list[OrderItemIn] = Field(default_factory=list)
    subtotal: Decimal = Field(ge=0)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    shipping: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Field(ge=0)
    shipping_address: AddressIn
    billing_address: AddressIn
    payment_method: str = Field(min_length=1, max_length=32)

    @field_validator("subtotal", "tax", "shipping", "total")
    @classmethod
    def round_money(cls, v: Decimal) -> Decimal:
        return v.quantize(CENT, rounding=ROUND_HALF_UP)


class UpdateOrderDTO(CamelModel):
    """Fields an order may be updated with. Anything else is ignored."""

    model_config = ConfigDict(extra="ignore")

    status: Optional[OrderStatus] = None
    tracking_number: Optional[str] = Field(default=None, max_length=64)
    notes: Optional[str] = None


class OrderItemOut(CamelModel):
    product_id: str
    name: str
    price: float
    quantity: int
    image: str = ""
    size: Optional[str] = None
    color: Optional[str] = None


class OrderReadDTO(CamelModel):
    """Read model returned by every order endpoint."""

    id: str
    order_number: str
    user_id: str
    items: list[OrderItemOut]
    subtotal: float
    tax: float
    shipping: float
    total: float
    status: str
    payment_status: str
    shipping_address: dict
    billing_address: dict
    payment_method: str
    payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    dispute_id: Optional[str] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, o) -> "OrderReadDTO":
        return cls(
            id=str(o.id),
            order_number=o.order_number,
            user_id=o.user_id,
            items=o.items,
            subtotal=o.subtotal,
            tax=o.tax,
            shipping=o.shipping,
            total=o.total,
            status=o.status,
            payment_status=o.payment_status,
            shipping_address=o.shipping_address,
            billing_address=o.billing_address,
            payment_method=o.payment_method,
            payment_intent_id=o.payment_intent_id,
            paid_at=o.paid_at,
            failure_reason=o.failure_reason or None,
            dispute_id=o.dispute_id or None,
            tracking_number=o.tracking_number or None,
            notes=o.notes or None,
            created_at=o.created_at,
            updated_at=o.updated_at,
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
