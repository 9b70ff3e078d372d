from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class Restaurant(BaseModel):
    """A candidate restaurant from a catalog fetch.

    Two records with the same ``id`` are the same restaurant, whatever their
    other fields say. This keeps de-duplication and re-fetches stable.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    address: str = ""
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    price_level: int | None = Field(default=None, ge=1, le=4)
    cuisine_types: tuple[str, ...] = ()
    location: Coordinate
    distance: float | None = Field(default=None, ge=0.0)
    open_now: bool | None = None
    phone_number: str | None = None
    website: str | None = None

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Restaurant):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)
