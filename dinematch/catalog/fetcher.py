from __future__ import annotations

import asyncio
import logging

from ..errors import CatalogTimeoutError, FetchSupersededError
from ..preferences.filtering import apply_preferences, search_radius_meters
from ..preferences.models import PreferenceSet
from .base import RestaurantCatalog
from .cache import cache_get, cache_set, make_fetch_key
from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .fake import FakeCatalog
from .google_places import GooglePlacesCatalog
from .models import Coordinate, Restaurant

logger = logging.getLogger(__name__)


def build_catalog(config: CatalogConfig = DEFAULT_CATALOG_CONFIG) -> RestaurantCatalog:
    """Pick the catalog implementation from explicit configuration."""
    if config.use_mock:
        logger.info("Using fake restaurant catalog (mock mode enabled)")
        return FakeCatalog()
    if not config.api_key:
        logger.warning("GOOGLE_PLACES_API_KEY not set, falling back to fake restaurant catalog")
        return FakeCatalog()
    return GooglePlacesCatalog(config)


def dedupe_by_id(restaurants: list[Restaurant]) -> list[Restaurant]:
    """Drop repeated ids, keeping the first occurrence and the original order."""
    seen: set[str] = set()
    unique: list[Restaurant] = []
    for r in restaurants:
        if r.id in seen:
            continue
        seen.add(r.id)
        unique.append(r)
    return unique


class CatalogFetcher:
    """Latest-wins async wrapper around a blocking catalog.

    Every call to :meth:`fetch` starts a new generation and cancels the one
    in flight, so a slow, superseded search can never deliver results after
    a newer one. The superseded caller gets ``FetchSupersededError``.
    """

    def __init__(
        self,
        catalog: RestaurantCatalog,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
        use_cache: bool = True,
    ) -> None:
        self._catalog = catalog
        self._config = config
        self._use_cache = use_cache
        self._generation = 0
        self._inflight: asyncio.Future | None = None

    @property
    def catalog(self) -> RestaurantCatalog:
        return self._catalog

    @property
    def generation(self) -> int:
        return self._generation

    def _load(self, location: Coordinate, preferences: PreferenceSet) -> list[Restaurant]:
        radius = search_radius_meters(preferences, self._config.default_radius_miles)
        excluded = sorted(preferences.excluded_cuisines)
        key = make_fetch_key(
            self._catalog.name, location.latitude, location.longitude, radius, excluded,
        )
        if self._use_cache:
            cached = cache_get(key, ttl=self._config.cache_ttl)
            if cached is not None:
                return cached

        restaurants = self._catalog.fetch(location, radius, excluded)
        if self._use_cache:
            cache_set(key, restaurants)
        return restaurants

    async def fetch(self, location: Coordinate, preferences: PreferenceSet) -> list[Restaurant]:
        self._generation += 1
        generation = self._generation
        if self._inflight is not None and not self._inflight.done():
            logger.info("Cancelling superseded restaurant fetch")
            self._inflight.cancel()

        task = asyncio.ensure_future(asyncio.wait_for(
            asyncio.to_thread(self._load, location, preferences),
            timeout=self._config.timeout,
        ))
        self._inflight = task
        try:
            restaurants = await task
        except asyncio.TimeoutError as exc:
            logger.warning("Restaurant fetch timed out after %.1fs", self._config.timeout)
            raise CatalogTimeoutError(self._config.timeout) from exc
        except asyncio.CancelledError:
            if generation != self._generation:
                raise FetchSupersededError(generation) from None
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation != self._generation:
            raise FetchSupersededError(generation)

        results = apply_preferences(dedupe_by_id(restaurants), preferences)
        results = results[: self._config.max_results]
        logger.info(
            "Fetched %d restaurants (%d before filtering) from %s catalog",
            len(results), len(restaurants), self._catalog.name,
        )
        return results
