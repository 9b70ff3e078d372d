"""Catalog interface (repository pattern).

Catalogs must be swappable and return domain models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from .models import Coordinate, Restaurant


class RestaurantCatalog(ABC):
    """Source of candidate restaurants around a location."""

    name: str = "catalog"

    @abstractmethod
    def fetch(
        self,
        location: Coordinate,
        radius_meters: float,
        excluded_cuisines: Iterable[str] = (),
    ) -> list[Restaurant]:
        """Return restaurants within ``radius_meters`` of ``location``.

        The result is ordered as the source returned it. Implementations
        raise ``CatalogError`` on network or parsing failures.
        """
        ...
