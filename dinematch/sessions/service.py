"""Session service - orchestration over the pure coordinator.

Services:
- Depend only on interfaces (stores)
- Run coordinator transforms in a read-modify-write loop, retrying on conflict
- Evict expired sessions lazily, when they are read
- Publish session events to observers
- Own the sync tasks of session members and stop them on leave/complete
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..catalog.models import Coordinate, Restaurant
from ..errors import ConflictError, NotSessionHostError, SessionExpiredError, SessionNotFoundError
from ..preferences.models import PreferenceSet
from ..swipe.engine import SwipeDirection
from . import coordinator
from .config import DEFAULT_SESSION_CONFIG, SessionConfig
from .models import (
    ParticipantProgress,
    Session,
    SessionProgress,
    SessionStatus,
    SessionViews,
    utcnow,
)
from .store import SessionStore
from .sync import SessionSync

logger = logging.getLogger(__name__)

Transform = Callable[[Session | None], Session | None]


@dataclass(frozen=True)
class SessionEvent:
    kind: str
    session_id: str
    user_id: str | None = None
    session: Session | None = None
    data: dict[str, Any] = field(default_factory=dict)


SessionObserver = Callable[[SessionEvent], None]


class SessionService:
    """Service for group dining session operations."""

    def __init__(
        self,
        store: SessionStore,
        config: SessionConfig = DEFAULT_SESSION_CONFIG,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock
        self._observers: list[SessionObserver] = []
        self._syncs: dict[tuple[str, str], SessionSync] = {}

    @property
    def store(self) -> SessionStore:
        return self._store

    # ── Observers ──────────────────────────────────────────────────────

    def add_observer(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: SessionObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _emit(self, kind: str, session_id: str, **kwargs: Any) -> None:
        event = SessionEvent(kind=kind, session_id=session_id, **kwargs)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.warning("Session observer failed on %s event", kind, exc_info=True)

    # ── Read-modify-write ─────────────────────────────────────────────

    def _mutate(self, session_id: str, transform: Transform) -> tuple[Session | None, bool]:
        """Apply ``transform`` to the stored session, retrying on conflict.

        Returns the stored result and whether anything was written. A
        transform returning ``None`` for an existing session deletes it.
        """
        attempts = self._config.max_retries
        for attempt in range(1, attempts + 1):
            current = self._store.load(session_id)
            updated = transform(current)
            if updated is current:
                return current, False
            try:
                if updated is None:
                    self._store.delete(session_id, expected_version=current.version)
                    return None, True
                return self._store.save(updated), True
            except ConflictError:
                logger.warning(
                    "Conflict writing session %s (attempt %d/%d)", session_id, attempt, attempts,
                )
        raise ConflictError(session_id)

    # ── Lifecycle ──────────────────────────────────────────────────────

    def create_session(
        self,
        host_user_id: str,
        host_name: str,
        session_name: str,
        preferences: PreferenceSet,
        location: Coordinate,
    ) -> Session:
        session = coordinator.create_session(
            host_user_id,
            host_name,
            session_name,
            preferences,
            location,
            now=self._clock(),
            ttl=timedelta(seconds=self._config.ttl_seconds),
        )
        stored = self._store.save(session)
        logger.info("Session %s created by %s", stored.id, host_user_id)
        self._emit("session_created", stored.id, user_id=host_user_id, session=stored)
        return stored

    def find_session(self, session_id: str) -> Session | None:
        return self._store.load(session_id)

    def get_session(self, session_id: str) -> Session:
        """Return a live session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionExpiredError: If it is past its TTL; it is deleted as well.
        """
        session = self._store.load(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if coordinator.effective_status(session, self._clock()) == SessionStatus.expired:
            self._evict(session)
            raise SessionExpiredError(session_id)
        return session

    def _evict(self, session: Session) -> None:
        if self._store.delete(session.id):
            logger.info("Session %s expired, deleted", session.id)
            self._stop_syncs(session.id)
            self._emit("session_expired", session.id, session=session)

    def purge_expired(self) -> int:
        """Delete every expired session; returns how many were removed."""
        now = self._clock()
        removed = 0
        for session_id in self._store.session_ids():
            session = self._store.load(session_id)
            if session is not None and coordinator.is_expired(session, now):
                self._evict(session)
                removed += 1
        return removed

    def join_session(self, session_id: str, user_id: str, user_name: str) -> Session:
        now = self._clock()
        before = self.get_session(session_id)
        already_member = before.participant(user_id) is not None

        def transform(current: Session | None) -> Session | None:
            if current is None:
                raise SessionNotFoundError(session_id)
            return coordinator.join_session(current, user_id, user_name, now=now)

        session, changed = self._mutate(session_id, transform)
        if changed and not already_member:
            logger.info("User %s joined session %s", user_id, session_id)
            self._emit("participant_joined", session_id, user_id=user_id, session=session)
        return session

    def leave_session(self, session_id: str, user_id: str) -> Session | None:
        session, changed = self._mutate(
            session_id, lambda current: coordinator.leave_session(current, user_id),
        )
        if session is None or session.participant(user_id) is None:
            self._stop_sync(session_id, user_id)
        if not changed:
            return session
        if session is None:
            logger.info("Session %s deleted - no participants remaining", session_id)
            self._stop_syncs(session_id)
            self._emit("session_destroyed", session_id, user_id=user_id)
        else:
            logger.info("User %s left session %s", user_id, session_id)
            self._emit("participant_left", session_id, user_id=user_id, session=session)
        return session

    def assign_restaurants(
        self,
        session_id: str,
        user_id: str,
        restaurants: Iterable[Restaurant],
    ) -> Session:
        candidates = tuple(restaurants)
        self.get_session(session_id)

        def transform(current: Session | None) -> Session | None:
            if current is None:
                raise SessionNotFoundError(session_id)
            if current.host_user_id != user_id:
                raise NotSessionHostError(user_id)
            return coordinator.assign_restaurants(current, candidates)

        session, _ = self._mutate(session_id, transform)
        logger.info("Assigned %d restaurants to session %s", len(candidates), session_id)
        self._emit(
            "restaurants_assigned", session_id, user_id=user_id, session=session,
            data={"count": len(candidates)},
        )
        return session

    def record_vote(
        self,
        session_id: str,
        restaurant_id: str,
        user_id: str,
        vote: SwipeDirection,
    ) -> Session | None:
        now = self._clock()
        session, changed = self._mutate(
            session_id,
            lambda current: coordinator.record_vote(current, restaurant_id, user_id, vote, now=now),
        )
        if changed:
            self._emit(
                "vote_recorded", session_id, user_id=user_id, session=session,
                data={"restaurant_id": restaurant_id, "vote": vote.value},
            )
        return session

    def _set_status(self, session_id: str, user_id: str, status: SessionStatus) -> Session:
        now = self._clock()
        self.get_session(session_id)

        def transform(current: Session | None) -> Session | None:
            if current is None:
                raise SessionNotFoundError(session_id)
            if current.host_user_id != user_id:
                raise NotSessionHostError(user_id)
            return coordinator.set_status(current, status, now=now)

        session, changed = self._mutate(session_id, transform)
        if changed:
            logger.info("Session %s is now %s", session_id, status.value)
            self._emit(
                "status_changed", session_id, user_id=user_id, session=session,
                data={"status": status.value, "matched": len(coordinator.derive_views(session).matched)},
            )
        return session

    def start_session(self, session_id: str, user_id: str) -> Session:
        return self._set_status(session_id, user_id, SessionStatus.active)

    def complete_session(self, session_id: str, user_id: str) -> Session:
        session = self._set_status(session_id, user_id, SessionStatus.completed)
        self._stop_syncs(session_id)
        return session

    # ── Derived views ────────────────────────────────────────────────

    def views(self, session_id: str) -> SessionViews:
        return coordinator.derive_views(self.get_session(session_id))

    def progress(self, session_id: str) -> SessionProgress:
        return coordinator.progress(self.get_session(session_id))

    def participant_progress(self, session_id: str, user_id: str) -> ParticipantProgress:
        return coordinator.participant_progress(self.get_session(session_id), user_id)

    # ── Sync ownership ────────────────────────────────────────────────

    def start_sync(
        self,
        session_id: str,
        user_id: str,
        on_change: Callable[[Session | None], None],
    ) -> SessionSync:
        """Start polling ``session_id`` on behalf of ``user_id``.

        Must be called from a running event loop. The task is stopped when
        the user leaves or the session completes, expires or collapses.
        """
        key = (session_id, user_id)
        existing = self._syncs.get(key)
        if existing is not None and existing.running:
            return existing
        sync = SessionSync(self._store, session_id, on_change, interval=self._config.sync_interval)
        sync.start()
        self._syncs[key] = sync
        return sync

    def active_syncs(self, session_id: str) -> list[SessionSync]:
        return [s for (sid, _), s in self._syncs.items() if sid == session_id and s.running]

    def _stop_sync(self, session_id: str, user_id: str) -> None:
        sync = self._syncs.pop((session_id, user_id), None)
        if sync is not None:
            sync.cancel()

    def _stop_syncs(self, session_id: str) -> None:
        for key in [k for k in self._syncs if k[0] == session_id]:
            self._syncs.pop(key).cancel()
