from __future__ import annotations

from collections.abc import Iterable

from ..catalog.models import Restaurant
from .models import PreferenceSet, PriceRange

METERS_PER_MILE = 1609.34

_PRICE_LEVELS: dict[PriceRange, frozenset[int]] = {
    PriceRange.budget: frozenset({1}),
    PriceRange.moderate: frozenset({2}),
    PriceRange.expensive: frozenset({3, 4}),
}


def search_radius_meters(preferences: PreferenceSet, default_miles: float) -> float:
    """Radius to hand to the catalog search, in meters.

    Delivery mode has no meaningful distance, so the default radius is used.
    """
    miles = preferences.max_distance if preferences.distance_applies else default_miles
    return miles * METERS_PER_MILE


def price_levels(price_range: PriceRange | None) -> frozenset[int] | None:
    """Return the catalog price levels a price range admits, or ``None`` for any."""
    if price_range is None:
        return None
    return _PRICE_LEVELS[price_range]


def is_excluded(restaurant: Restaurant, excluded_cuisines: Iterable[str]) -> bool:
    """True when any cuisine type contains one of the excluded tags."""
    types_lower = [t.lower() for t in restaurant.cuisine_types]
    for excluded in excluded_cuisines:
        needle = excluded.strip().lower()
        if needle and any(needle in t for t in types_lower):
            return True
    return False


def apply_preferences(
    restaurants: Iterable[Restaurant],
    preferences: PreferenceSet,
) -> list[Restaurant]:
    """Keep restaurants matching ``preferences``, preserving catalog order.

    Restaurants with an unknown price level or distance are kept: the
    catalog did not tell us enough to rule them out.
    """
    levels = price_levels(preferences.price_range)
    kept: list[Restaurant] = []
    for r in restaurants:
        if is_excluded(r, preferences.excluded_cuisines):
            continue
        if levels is not None and r.price_level is not None and r.price_level not in levels:
            continue
        if (
            preferences.distance_applies
            and r.distance is not None
            and r.distance > preferences.max_distance
        ):
            continue
        kept.append(r)
    return kept
