"""
Base schemas with common functionality.
"""
from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common functionality for all schemas"""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class FrozenSchema(BaseSchema):
    """Immutable schema; instances are safe to share between requests"""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )
