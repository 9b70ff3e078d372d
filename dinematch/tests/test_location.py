from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from dinematch.catalog.models import Coordinate
from dinematch.errors import (
    InvalidPostalCodeError,
    LocationNotFoundError,
    LocationPermissionDeniedError,
    LocationTimeoutError,
)
from dinematch.location.config import LocationConfig
from dinematch.location.service import (
    GoogleGeocodingProvider,
    LocationProvider,
    LocationService,
    StaticLocationProvider,
    validate_postal_code,
    with_timeout,
)

SF = Coordinate(latitude=37.7749, longitude=-122.4194)


class _SlowProvider(LocationProvider):
    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.lookups: list[str] = []

    async def resolve_current_location(self) -> Coordinate:
        await asyncio.sleep(self.delay)
        return SF

    async def resolve_from_postal_code(self, code: str) -> Coordinate:
        self.lookups.append(code)
        await asyncio.sleep(self.delay)
        return SF


class TestPostalCode:
    @pytest.mark.parametrize("code", ["94103", "94103-1234", "  10001 "])
    def test_valid(self, code):
        assert validate_postal_code(code) == code.strip()

    @pytest.mark.parametrize("code", ["", "9410", "941031", "ABCDE", "94103-12", "94103 1234"])
    def test_invalid(self, code):
        with pytest.raises(InvalidPostalCodeError):
            validate_postal_code(code)

    def test_invalid_code_never_reaches_provider(self):
        provider = _SlowProvider(0)
        service = LocationService(provider, LocationConfig(timeout=1))
        with pytest.raises(InvalidPostalCodeError):
            asyncio.run(service.from_postal_code("12ab"))
        assert provider.lookups == []


class TestTimeout:
    def test_with_timeout_returns_result(self):
        async def quick():
            return 42

        assert asyncio.run(with_timeout(quick(), 1)) == 42

    def test_with_timeout_fails(self):
        with pytest.raises(LocationTimeoutError):
            asyncio.run(with_timeout(asyncio.sleep(1), 0.01))

    def test_service_applies_configured_timeout(self):
        service = LocationService(_SlowProvider(1), LocationConfig(timeout=0.01))
        with pytest.raises(LocationTimeoutError):
            asyncio.run(service.current())
        with pytest.raises(LocationTimeoutError):
            asyncio.run(service.from_postal_code("94103"))


class TestStaticProvider:
    def test_reports_device_location(self):
        service = LocationService(StaticLocationProvider(SF))
        assert asyncio.run(service.current()) == SF

    def test_denied_permission(self):
        service = LocationService(StaticLocationProvider(None))
        with pytest.raises(LocationPermissionDeniedError):
            asyncio.run(service.current())

    def test_default_location(self):
        service = LocationService(StaticLocationProvider(None), LocationConfig())
        assert service.default_location == SF


def _geocode_response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    return resp


class TestGoogleGeocoding:
    @patch("dinematch.location.service.requests.get")
    def test_resolves_postal_code(self, mock_get):
        mock_get.return_value = _geocode_response({
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": 40.7506, "lng": -73.9972}}}],
        })
        service = LocationService(GoogleGeocodingProvider(LocationConfig(api_key="key")))
        coord = asyncio.run(service.from_postal_code("10001"))
        assert coord == Coordinate(latitude=40.7506, longitude=-73.9972)
        assert mock_get.call_args.kwargs["params"]["address"] == "10001"

    @patch("dinematch.location.service.requests.get")
    def test_zero_results(self, mock_get):
        mock_get.return_value = _geocode_response({"status": "ZERO_RESULTS", "results": []})
        service = LocationService(GoogleGeocodingProvider(LocationConfig(api_key="key")))
        with pytest.raises(LocationNotFoundError):
            asyncio.run(service.from_postal_code("99999"))

    @patch("dinematch.location.service.requests.get")
    def test_network_failure(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")
        service = LocationService(GoogleGeocodingProvider(LocationConfig(api_key="key")))
        with pytest.raises(LocationNotFoundError):
            asyncio.run(service.from_postal_code("94103"))

    def test_current_location_needs_device_fix(self):
        provider = GoogleGeocodingProvider(LocationConfig(), current=None)
        with pytest.raises(LocationPermissionDeniedError):
            asyncio.run(provider.resolve_current_location())
