from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import requests

from ..errors import CatalogError
from ..preferences.filtering import is_excluded
from .base import RestaurantCatalog
from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .geo import distance_miles
from .models import Coordinate, Restaurant

logger = logging.getLogger(__name__)

_FOOD_HINTS = (
    "food", "meal", "dining", "cafe", "bistro", "eatery",
    "kitchen", "grill", "diner", "bakery",
)
_NON_RESTAURANT_TYPES = {"lodging", "hotel", "bar", "night_club", "shopping_mall", "store"}


def _is_food_place(types: list[str]) -> bool:
    """Decide whether a place is somewhere to eat from its Places types."""
    lowered = [t.lower() for t in types]
    if "restaurant" in lowered:
        # Many restaurants also carry "bar"; the restaurant type wins.
        return True
    if any(t in _NON_RESTAURANT_TYPES for t in lowered):
        return False
    return any(hint in t for t in lowered for hint in _FOOD_HINTS)


def _parse_place(place: dict[str, Any], origin: Coordinate) -> Restaurant:
    loc = (place.get("geometry") or {}).get("location") or {}
    location = Coordinate(latitude=float(loc["lat"]), longitude=float(loc["lng"]))
    opening = place.get("opening_hours") or {}
    return Restaurant(
        id=str(place["place_id"]),
        name=place.get("name", ""),
        address=place.get("vicinity") or place.get("formatted_address") or "",
        rating=place.get("rating"),
        price_level=place.get("price_level") or None,
        cuisine_types=tuple(place.get("types") or ()),
        location=location,
        distance=distance_miles(origin, location),
        open_now=opening.get("open_now"),
        phone_number=place.get("formatted_phone_number"),
        website=place.get("website"),
    )


class GooglePlacesCatalog(RestaurantCatalog):
    """Restaurant catalog backed by the Google Places Nearby Search API."""

    name = "google_places"

    def __init__(
        self,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._http = session or requests.Session()

    def fetch(
        self,
        location: Coordinate,
        radius_meters: float,
        excluded_cuisines: Iterable[str] = (),
    ) -> list[Restaurant]:
        excluded = list(excluded_cuisines)
        params = {
            "location": f"{location.latitude},{location.longitude}",
            "radius": int(round(radius_meters)),
            "type": "restaurant",
            "key": self._config.api_key,
        }
        try:
            resp = self._http.get(
                f"{self._config.base_url}/nearbysearch/json",
                params=params,
                timeout=self._config.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Google Places request failed: %s", exc)
            raise CatalogError() from exc

        status = payload.get("status", "")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            logger.warning(
                "Google Places returned status %s: %s",
                status, payload.get("error_message", ""),
            )
            raise CatalogError(f"Restaurant search failed ({status or 'unknown status'})")

        restaurants: list[Restaurant] = []
        for place in payload.get("results", []):
            types = place.get("types") or []
            if not _is_food_place(types):
                continue
            if self._config.open_now_only and not (place.get("opening_hours") or {}).get("open_now", False):
                continue
            try:
                restaurant = _parse_place(place, location)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed place record %r", place.get("place_id"), exc_info=True)
                continue
            if is_excluded(restaurant, excluded):
                continue
            restaurants.append(restaurant)

        logger.info("Google Places returned %d usable restaurants", len(restaurants))
        return restaurants
