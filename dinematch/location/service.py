from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

import requests

from ..catalog.models import Coordinate
from ..errors import (
    InvalidPostalCodeError,
    LocationNotFoundError,
    LocationPermissionDeniedError,
    LocationTimeoutError,
)
from .config import DEFAULT_LOCATION_CONFIG, LocationConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_POSTAL_CODE_RE = re.compile(r"^\d{5}(-\d{4})?$")


def validate_postal_code(code: str) -> str:
    """Return the stripped postal code, or raise ``InvalidPostalCodeError``."""
    cleaned = (code or "").strip()
    if not _POSTAL_CODE_RE.match(cleaned):
        raise InvalidPostalCodeError(cleaned)
    return cleaned


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    """Await ``awaitable`` or fail with ``LocationTimeoutError`` after ``seconds``."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise LocationTimeoutError(seconds) from exc


class LocationProvider(ABC):
    """Interface for location resolution."""

    @abstractmethod
    async def resolve_current_location(self) -> Coordinate:
        """Return the current coordinate, or raise a location error."""
        ...

    @abstractmethod
    async def resolve_from_postal_code(self, code: str) -> Coordinate:
        """Return the coordinate for a validated postal code."""
        ...


class StaticLocationProvider(LocationProvider):
    """Provider that reports a known coordinate.

    ``current`` is what the device reported; ``None`` means the diner
    refused location access. Postal codes are not geocoded here.
    """

    def __init__(self, current: Coordinate | None) -> None:
        self._current = current

    async def resolve_current_location(self) -> Coordinate:
        if self._current is None:
            raise LocationPermissionDeniedError()
        return self._current

    async def resolve_from_postal_code(self, code: str) -> Coordinate:
        raise LocationNotFoundError(code)


class GoogleGeocodingProvider(LocationProvider):
    """Geocodes postal codes with the Google Geocoding API."""

    def __init__(
        self,
        config: LocationConfig = DEFAULT_LOCATION_CONFIG,
        current: Coordinate | None = None,
    ) -> None:
        self._config = config
        self._current = current

    async def resolve_current_location(self) -> Coordinate:
        if self._current is None:
            raise LocationPermissionDeniedError()
        return self._current

    def _geocode(self, code: str) -> Coordinate:
        params = {"address": code, "components": "country:US", "key": self._config.api_key}
        try:
            resp = requests.get(self._config.geocode_url, params=params, timeout=self._config.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError):
            logger.warning("Geocoding request failed for %s", code, exc_info=True)
            raise LocationNotFoundError(code)

        results = payload.get("results") or []
        if payload.get("status") != "OK" or not results:
            logger.info("Geocoding found nothing for %s (status %s)", code, payload.get("status"))
            raise LocationNotFoundError(code)

        loc = results[0]["geometry"]["location"]
        return Coordinate(latitude=float(loc["lat"]), longitude=float(loc["lng"]))

    async def resolve_from_postal_code(self, code: str) -> Coordinate:
        return await asyncio.to_thread(self._geocode, code)


class LocationService:
    """Resolves locations through a provider, bounded by the configured timeout."""

    def __init__(
        self,
        provider: LocationProvider,
        config: LocationConfig = DEFAULT_LOCATION_CONFIG,
    ) -> None:
        self._provider = provider
        self._config = config

    async def current(self) -> Coordinate:
        return await with_timeout(self._provider.resolve_current_location(), self._config.timeout)

    async def from_postal_code(self, code: str) -> Coordinate:
        cleaned = validate_postal_code(code)
        coordinate = await with_timeout(
            self._provider.resolve_from_postal_code(cleaned), self._config.timeout,
        )
        logger.info("Resolved postal code %s", cleaned)
        return coordinate

    @property
    def default_location(self) -> Coordinate:
        return Coordinate(
            latitude=self._config.default_latitude,
            longitude=self._config.default_longitude,
        )
