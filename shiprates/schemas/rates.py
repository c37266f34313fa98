# File: shiprates/schemas/rates.py

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from shiprates.schemas.base import BaseSchema, FrozenSchema


class LineItem(FrozenSchema):
    """One cart line as sent by the Shopify carrier-service callback.

    ``price`` is the pre-discount unit price in minor currency units.
    """
    variant_id: str
    price: int = Field(ge=0)
    quantity: int = Field(gt=0)
    product_type: Optional[str] = None
    title: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    product_id: Optional[str] = None

    @field_validator("variant_id", "product_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Shopify sends numeric ids; they are treated as opaque strings
        if value is None:
            return value
        return str(value)

    @property
    def extended_price(self) -> int:
        return self.price * self.quantity


class RateRequestBody(BaseSchema):
    items: List[LineItem]
    currency: Optional[str] = None
    locale: Optional[str] = None
    origin: Optional[Dict[str, Any]] = None
    destination: Optional[Dict[str, Any]] = None


class RateRequest(BaseSchema):
    rate: RateRequestBody


class RateQuote(FrozenSchema):
    service_name: str
    service_code: str
    total_price: str
    currency: str
    description: str


class RateResponse(BaseSchema):
    rates: List[RateQuote] = []
