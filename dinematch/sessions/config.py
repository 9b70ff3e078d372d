from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

SESSION_TTL_SECONDS = 60 * 60


@dataclass(frozen=True)
class SessionConfig:
    ttl_seconds: int = SESSION_TTL_SECONDS
    sync_interval: float = float(os.getenv("DINEMATCH_SYNC_INTERVAL", "5.0"))
    max_retries: int = 3


DEFAULT_SESSION_CONFIG = SessionConfig()
