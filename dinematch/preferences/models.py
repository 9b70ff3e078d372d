from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DeliveryMode(str, Enum):
    dine_in = "dine_in"
    takeout = "takeout"
    delivery = "delivery"


class PriceRange(str, Enum):
    budget = "budget"
    moderate = "moderate"
    expensive = "expensive"


class PreferenceSet(BaseModel):
    """Immutable description of a restaurant search.

    ``max_distance`` is in miles. In delivery mode it is forced to ``0`` and
    ignored by filtering, since the restaurant comes to the diner.
    """

    model_config = ConfigDict(frozen=True)

    delivery_mode: DeliveryMode = DeliveryMode.dine_in
    max_distance: float = Field(default=20.0, ge=0.0)
    excluded_cuisines: frozenset[str] = Field(default_factory=frozenset)
    price_range: PriceRange | None = None

    @model_validator(mode="before")
    @classmethod
    def _delivery_has_no_distance(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("delivery_mode") == DeliveryMode.delivery:
            data = {**data, "max_distance": 0.0}
        return data

    @field_validator("excluded_cuisines", mode="before")
    @classmethod
    def _normalize_cuisines(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(c.strip().lower() for c in value if c and c.strip())

    @property
    def distance_applies(self) -> bool:
        return self.delivery_mode != DeliveryMode.delivery
