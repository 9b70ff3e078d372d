from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from ..preferences.filtering import METERS_PER_MILE
from .base import RestaurantCatalog
from .geo import distances_miles
from .models import Coordinate, Restaurant

logger = logging.getLogger(__name__)

_DEFAULT_CSV = Path(__file__).resolve().parent / "data" / "mock_restaurants.csv"


def _load(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"id": str, "phone_number": str, "website": str})

    # Pre-parse cuisines into lowercase lists for matching
    df["cuisines_list"] = (
        df["cuisines"]
        .fillna("")
        .apply(lambda s: [c.strip().lower() for c in s.split(",") if c.strip()])
    )
    return df


def _optional(value):
    return value if pd.notna(value) else None


class FakeCatalog(RestaurantCatalog):
    """Offline catalog: a bundled dataset placed around the requested location.

    Each row carries a latitude/longitude offset, so the same restaurants
    appear near wherever the search is made.
    """

    name = "fake"

    def __init__(self, csv_path: Path = _DEFAULT_CSV) -> None:
        self._csv_path = csv_path
        self._df: pd.DataFrame | None = None

    def _dataframe(self) -> pd.DataFrame:
        if self._df is None:
            self._df = _load(self._csv_path)
        return self._df

    def fetch(
        self,
        location: Coordinate,
        radius_meters: float,
        excluded_cuisines: Iterable[str] = (),
    ) -> list[Restaurant]:
        df = self._dataframe().copy()
        df["latitude"] = location.latitude + df["lat_offset"]
        df["longitude"] = location.longitude + df["lng_offset"]
        df["distance"] = distances_miles(location, df["latitude"].to_numpy(), df["longitude"].to_numpy())

        mask = df["distance"] <= radius_meters / METERS_PER_MILE

        excluded = {c.strip().lower() for c in excluded_cuisines if c and c.strip()}
        if excluded:
            mask = mask & ~df["cuisines_list"].apply(
                lambda cl: any(ex in c for c in cl for ex in excluded)
            )

        candidates = df.loc[mask]
        restaurants: list[Restaurant] = []
        for _, row in candidates.iterrows():
            restaurants.append(Restaurant(
                id=str(row["id"]),
                name=row["name"],
                address=row["address"],
                rating=float(row["rating"]) if pd.notna(row["rating"]) else None,
                price_level=int(row["price_level"]) if pd.notna(row["price_level"]) else None,
                cuisine_types=tuple(row["cuisines_list"]),
                location=Coordinate(latitude=float(row["latitude"]), longitude=float(row["longitude"])),
                distance=round(float(row["distance"]), 3),
                open_now=bool(row["open_now"]) if pd.notna(row["open_now"]) else None,
                phone_number=_optional(row["phone_number"]),
                website=_optional(row["website"]),
            ))

        logger.debug("Fake catalog returned %d of %d restaurants", len(restaurants), len(df))
        return restaurants
