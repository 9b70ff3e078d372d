from __future__ import annotations

from .engine import SwipeEngine

# One solo swipe walk per user, keyed by user id
_engines: dict[str, SwipeEngine] = {}


def set_engine(user_id: str, engine: SwipeEngine) -> None:
    _engines[user_id] = engine


def get_engine(user_id: str) -> SwipeEngine | None:
    return _engines.get(user_id)


def clear_engines() -> None:
    _engines.clear()
