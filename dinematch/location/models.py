from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class LocationRequest(BaseModel):
    """Either the device coordinates or a postal code typed by the diner.

    Sending neither means the diner refused location access.
    """

    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    postal_code: str | None = None

    @model_validator(mode="after")
    def _coordinates_come_in_pairs(self) -> "LocationRequest":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self
