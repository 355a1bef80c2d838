"""Base classes for domain models."""

from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable domain value, compared by its fields."""

    model_config = ConfigDict(frozen=True)
