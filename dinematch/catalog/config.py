from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CatalogConfig:
    api_key: str = os.getenv("GOOGLE_PLACES_API_KEY", "")
    use_mock: bool = _env_flag("DINEMATCH_USE_MOCK_CATALOG")
    base_url: str = "https://maps.googleapis.com/maps/api/place"
    timeout: float = 10.0
    max_results: int = 20
    default_radius_miles: float = 20.0
    open_now_only: bool = True
    cache_ttl: float = 300.0


DEFAULT_CATALOG_CONFIG = CatalogConfig()
