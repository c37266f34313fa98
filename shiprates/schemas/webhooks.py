# File: shiprates/schemas/webhooks.py

from typing import List

from pydantic import field_validator

from shiprates.schemas.base import BaseSchema


class VariantRef(BaseSchema):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)


class ProductUpdateNotification(BaseSchema):
    """The parts of a Shopify ``products/update`` payload we act on"""
    id: str
    variants: List[VariantRef] = []

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)

    @property
    def variant_ids(self) -> List[str]:
        return [variant.id for variant in self.variants]
