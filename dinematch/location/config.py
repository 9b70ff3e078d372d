from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LocationConfig:
    api_key: str = os.getenv("GOOGLE_GEOCODING_API_KEY", os.getenv("GOOGLE_PLACES_API_KEY", ""))
    geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    timeout: float = 10.0
    # San Francisco
    default_latitude: float = 37.7749
    default_longitude: float = -122.4194


DEFAULT_LOCATION_CONFIG = LocationConfig()
