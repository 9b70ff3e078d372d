from __future__ import annotations

import threading
import time
from typing import Any

from ..sessions.service import SessionEvent

_lock = threading.Lock()
_events: list[dict[str, Any]] = []


def record_event(event_type: str, data: dict[str, Any]) -> None:
    with _lock:
        _events.append({
            "type": event_type,
            "timestamp": time.time(),
            **data,
        })


def record_session_event(event: SessionEvent) -> None:
    """``SessionService`` observer: flattens a session event into the log."""
    data: dict[str, Any] = {"session_id": event.session_id, **event.data}
    if event.user_id is not None:
        data["user_id"] = event.user_id
    if event.session is not None:
        data["participants"] = len(event.session.participants)
    record_event(event.kind, data)


def get_events(event_type: str | None = None) -> list[dict[str, Any]]:
    with _lock:
        if event_type is None:
            return list(_events)
        return [e for e in _events if e["type"] == event_type]


def clear_events() -> None:
    with _lock:
        _events.clear()
