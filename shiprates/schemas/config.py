# File: shiprates/schemas/config.py

from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from shiprates.schemas.base import BaseSchema, FrozenSchema


class RateLabels(FrozenSchema):
    rts: str
    po: str


class RateConfig(FrozenSchema):
    """Snapshot of the rate configuration used for one computation.

    Serialised with camelCase keys (``feeUnderThreshold``, ``killSwitch``)
    to match the admin UI payloads.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    threshold: int = Field(ge=0)
    fee_under_threshold: int = Field(ge=0)
    labels: RateLabels
    description: str
    currency: str
    kill_switch: bool = False


class RateLabelsUpdate(BaseSchema):
    rts: Optional[str] = None
    po: Optional[str] = None


class RateConfigUpdate(BaseSchema):
    """Partial update; only the fields present are applied"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    threshold: Optional[int] = Field(default=None, ge=0)
    fee_under_threshold: Optional[int] = Field(default=None, ge=0)
    labels: Optional[RateLabelsUpdate] = None
    description: Optional[str] = None
    kill_switch: Optional[bool] = None
