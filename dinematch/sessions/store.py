"""Session store interfaces (repository pattern).

Stores must be swappable and return domain models. Writes are
compare-and-set on ``Session.version`` so concurrent writers to the same
session detect each other instead of silently overwriting.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

from ..errors import ConflictError
from .models import Session

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session | None], None]


class Subscription:
    """Handle returned by :meth:`SessionStore.subscribe`; call :meth:`cancel` to stop."""

    def __init__(self, on_cancel: Callable[[], None]) -> None:
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._on_cancel()


class SessionStore(ABC):
    """Interface for session persistence operations."""

    @abstractmethod
    def load(self, session_id: str) -> Session | None:
        """Return a session by ID, or None if not found."""
        ...

    @abstractmethod
    def save(self, session: Session) -> Session:
        """Write ``session`` if the stored version still equals ``session.version``.

        Returns the stored copy with its version bumped. Raises
        ``ConflictError`` if another write got there first.
        """
        ...

    @abstractmethod
    def delete(self, session_id: str, expected_version: int | None = None) -> bool:
        """Delete a session; returns False if it did not exist."""
        ...

    @abstractmethod
    def subscribe(self, session_id: str, on_change: SessionListener) -> Subscription:
        """Call ``on_change`` with each new version, or None once deleted."""
        ...

    @abstractmethod
    def session_ids(self) -> list[str]:
        """Return the IDs of all stored sessions."""
        ...


class InMemorySessionStore(SessionStore):
    """Thread-safe in-process store. Sessions are lost on restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._listeners: dict[str, list[SessionListener]] = {}

    def load(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def save(self, session: Session) -> Session:
        with self._lock:
            current = self._sessions.get(session.id)
            stored_version = current.version if current is not None else 0
            if stored_version != session.version:
                raise ConflictError(session.id)
            stored = session.model_copy(update={"version": session.version + 1})
            self._sessions[session.id] = stored
            listeners = list(self._listeners.get(session.id, ()))
        self._notify(listeners, stored)
        return stored

    def delete(self, session_id: str, expected_version: int | None = None) -> bool:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return False
            if expected_version is not None and current.version != expected_version:
                raise ConflictError(session_id)
            del self._sessions[session_id]
            listeners = list(self._listeners.pop(session_id, ()))
        self._notify(listeners, None)
        return True

    def subscribe(self, session_id: str, on_change: SessionListener) -> Subscription:
        with self._lock:
            self._listeners.setdefault(session_id, []).append(on_change)

        def _remove() -> None:
            with self._lock:
                listeners = self._listeners.get(session_id, [])
                if on_change in listeners:
                    listeners.remove(on_change)

        return Subscription(_remove)

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._listeners.clear()

    @staticmethod
    def _notify(listeners: list[SessionListener], session: Session | None) -> None:
        for listener in listeners:
            listener(session)
