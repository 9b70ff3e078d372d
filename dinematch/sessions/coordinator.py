"""
Session coordinator: pure transforms over :class:`Session` values.

Every mutating function takes the current session and returns a new one,
never touching storage. That keeps them safe to re-run against a freshly
loaded document when a concurrent write wins (see ``SessionService``).

Failure policy:

* ``create_session`` and ``join_session`` hard-fail (missing, expired or
  closed session, blank names).
* ``record_vote`` and ``leave_session`` soft-ignore a missing session or
  participant and return their input unchanged. ``record_vote`` still
  hard-fails on an expired session.
* ``set_status`` hard-fails on transitions the lifecycle does not allow.
* ``derive_views``, ``progress`` and ``participant_progress`` never fail.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TypeVar

from pydantic import BaseModel

from ..catalog.models import Coordinate, Restaurant
from ..errors import (
    InvalidStatusTransitionError,
    SessionClosedError,
    SessionExpiredError,
    SessionNotFoundError,
    ValidationError,
)
from ..preferences.models import PreferenceSet
from ..swipe.engine import SwipeDirection
from .config import SESSION_TTL_SECONDS
from .models import (
    ParticipantProgress,
    Session,
    SessionParticipant,
    SessionProgress,
    SessionStatus,
    SessionViews,
    utcnow,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SESSION_TTL = timedelta(seconds=SESSION_TTL_SECONDS)

_OPEN_STATUSES = (SessionStatus.waiting, SessionStatus.active)

_ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.waiting: frozenset({SessionStatus.active, SessionStatus.expired}),
    SessionStatus.active: frozenset({SessionStatus.completed, SessionStatus.expired}),
    SessionStatus.completed: frozenset(),
    SessionStatus.expired: frozenset(),
}


def apply_changes(model: M, **changes) -> M:
    """Copy ``model`` with ``changes`` applied; unlike ``model_copy`` its validators run."""
    return type(model)(**{**dict(model), **changes})


# ── Lifecycle ───────────────────────────────────────────────────────────


def is_expired(session: Session, now: datetime | None = None) -> bool:
    return (now or utcnow()) > session.expires_at


def effective_status(session: Session, now: datetime | None = None) -> SessionStatus:
    """Stored status, with open sessions past their TTL reported as expired."""
    if session.status in _OPEN_STATUSES and is_expired(session, now):
        return SessionStatus.expired
    return session.status


def create_session(
    host_user_id: str,
    host_name: str,
    session_name: str,
    preferences: PreferenceSet,
    location: Coordinate,
    now: datetime | None = None,
    ttl: timedelta = SESSION_TTL,
) -> Session:
    if not host_user_id.strip():
        raise ValidationError("Host user id is required")
    if not host_name.strip():
        raise ValidationError("Host name is required")
    if not session_name.strip():
        raise ValidationError("Session name is required")

    created_at = now or utcnow()
    host = SessionParticipant(
        user_id=host_user_id,
        name=host_name,
        is_host=True,
        joined_at=created_at,
    )
    return Session(
        host_user_id=host_user_id,
        host_name=host_name,
        session_name=session_name.strip(),
        preferences=preferences,
        location=location,
        created_at=created_at,
        expires_at=created_at + ttl,
        participants=(host,),
        status=SessionStatus.waiting,
    )


def join_session(
    session: Session | None,
    user_id: str,
    user_name: str,
    now: datetime | None = None,
) -> Session:
    """Add ``user_id`` as a participant.

    A user who is already a participant keeps their existing record and
    votes; the session is returned unchanged.
    """
    if session is None:
        raise SessionNotFoundError()
    if effective_status(session, now) == SessionStatus.expired:
        raise SessionExpiredError(session.id)
    if session.status == SessionStatus.completed:
        raise SessionClosedError(session.id)
    if not user_id.strip():
        raise ValidationError("User id is required")

    if session.participant(user_id) is not None:
        logger.debug("User %s already in session %s", user_id, session.id)
        return session

    participant = SessionParticipant(user_id=user_id, name=user_name, joined_at=now or utcnow())
    return apply_changes(session, participants=session.participants + (participant,))


def leave_session(session: Session | None, user_id: str) -> Session | None:
    """Remove every record for ``user_id``; ``None`` means the session is gone.

    The host only leaves through the collapse when they are the last one
    left; while others remain a host leave is ignored.
    """
    if session is None:
        return None

    leaving = [p for p in session.participants if p.user_id == user_id]
    if not leaving:
        logger.debug("User %s is not in session %s", user_id, session.id)
        return session

    remaining = tuple(p for p in session.participants if p.user_id != user_id)
    if not remaining:
        return None
    if any(p.is_host for p in leaving):
        logger.info("Host %s cannot leave session %s while others remain", user_id, session.id)
        return session

    return apply_changes(session, participants=remaining)


def assign_restaurants(session: Session, restaurants: Iterable[Restaurant]) -> Session:
    """Replace the shared candidate set, keeping catalog order."""
    return apply_changes(session, restaurants=tuple(restaurants))


def record_vote(
    session: Session | None,
    restaurant_id: str,
    user_id: str,
    vote: SwipeDirection,
    now: datetime | None = None,
) -> Session | None:
    """Record a like or dislike; the latest vote for a restaurant wins."""
    if session is None:
        return None
    if effective_status(session, now) == SessionStatus.expired:
        raise SessionExpiredError(session.id)
    if session.status == SessionStatus.completed:
        logger.debug("Ignoring vote on completed session %s", session.id)
        return session

    participants = list(session.participants)
    for idx, p in enumerate(participants):
        if p.user_id != user_id:
            continue
        if vote == SwipeDirection.like:
            liked = p.liked_restaurant_ids | {restaurant_id}
            disliked = p.disliked_restaurant_ids - {restaurant_id}
        else:
            liked = p.liked_restaurant_ids - {restaurant_id}
            disliked = p.disliked_restaurant_ids | {restaurant_id}
        participants[idx] = apply_changes(
            p, liked_restaurant_ids=liked, disliked_restaurant_ids=disliked,
        )
        return apply_changes(session, participants=tuple(participants))

    logger.debug("Ignoring vote from non-participant %s in session %s", user_id, session.id)
    return session


def set_status(
    session: Session,
    status: SessionStatus,
    now: datetime | None = None,
) -> Session:
    if status == session.status:
        return session
    if status != SessionStatus.expired and effective_status(session, now) == SessionStatus.expired:
        raise SessionExpiredError(session.id)
    if status not in _ALLOWED_TRANSITIONS[session.status]:
        raise InvalidStatusTransitionError(session.status.value, status.value)
    return apply_changes(session, status=status)


def start_session(session: Session, now: datetime | None = None) -> Session:
    return set_status(session, SessionStatus.active, now)


def complete_session(session: Session, now: datetime | None = None) -> Session:
    return set_status(session, SessionStatus.completed, now)


# ── Derived views ───────────────────────────────────────────────────────


def derive_views(session: Session) -> SessionViews:
    """Consensus views, in candidate order.

    ``matched`` is liked by every participant, ``liked`` by at least one,
    ``disliked`` by at least one.
    """
    participants = session.participants
    matched: list[Restaurant] = []
    liked: list[Restaurant] = []
    disliked: list[Restaurant] = []
    for r in session.restaurants:
        likes = [r.id in p.liked_restaurant_ids for p in participants]
        if participants and all(likes):
            matched.append(r)
        if any(likes):
            liked.append(r)
        if any(r.id in p.disliked_restaurant_ids for p in participants):
            disliked.append(r)
    return SessionViews(matched=matched, liked=liked, disliked=disliked)


def progress(session: Session) -> SessionProgress:
    """Group progress.

    A participant counts as completed once they have cast at least as many
    votes as there are candidates, so growing the candidate set can move
    them back to incomplete.
    """
    total = len(session.restaurants)
    completed = sum(1 for p in session.participants if p.votes_cast >= total)
    return SessionProgress(
        total_participants=len(session.participants),
        participants_completed=completed,
        matched_count=len(derive_views(session).matched),
    )


def participant_progress(session: Session, user_id: str) -> ParticipantProgress:
    p = session.participant(user_id)
    if p is None:
        return ParticipantProgress(liked=0, disliked=0, total=0)
    return ParticipantProgress(
        liked=len(p.liked_restaurant_ids),
        disliked=len(p.disliked_restaurant_ids),
        total=len(session.restaurants),
    )
