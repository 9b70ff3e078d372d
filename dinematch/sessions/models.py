from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..catalog.models import Coordinate, Restaurant
from ..preferences.models import PreferenceSet
from ..swipe.engine import SwipeDirection


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class SessionStatus(str, Enum):
    waiting = "waiting"
    active = "active"
    completed = "completed"
    expired = "expired"


class SessionParticipant(BaseModel):
    """One diner's membership and votes in a group session."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    user_id: str = Field(..., min_length=1)
    name: str
    is_host: bool = False
    joined_at: datetime = Field(default_factory=utcnow)
    liked_restaurant_ids: frozenset[str] = Field(default_factory=frozenset)
    disliked_restaurant_ids: frozenset[str] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def _votes_are_exclusive(self) -> "SessionParticipant":
        overlap = self.liked_restaurant_ids & self.disliked_restaurant_ids
        if overlap:
            raise ValueError(f"restaurants both liked and disliked: {sorted(overlap)}")
        return self

    @property
    def votes_cast(self) -> int:
        return len(self.liked_restaurant_ids) + len(self.disliked_restaurant_ids)


class Session(BaseModel):
    """Shared group dining session.

    Instances are immutable; every change produces a new value (see
    ``sessions.coordinator``). ``version`` is owned by the session store and
    is what compare-and-set writes are checked against.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    host_user_id: str
    host_name: str
    session_name: str
    preferences: PreferenceSet = Field(default_factory=PreferenceSet)
    location: Coordinate
    created_at: datetime
    expires_at: datetime
    participants: tuple[SessionParticipant, ...]
    restaurants: tuple[Restaurant, ...] = ()
    status: SessionStatus = SessionStatus.waiting
    version: int = 0

    @model_validator(mode="after")
    def _check_membership(self) -> "Session":
        if self.status in (SessionStatus.waiting, SessionStatus.active) and not self.participants:
            raise ValueError("an open session must have at least one participant")
        hosts = [p for p in self.participants if p.is_host]
        if self.participants and len(hosts) != 1:
            raise ValueError("a session must have exactly one host")
        return self

    @property
    def host(self) -> SessionParticipant | None:
        return next((p for p in self.participants if p.is_host), None)

    def participant(self, user_id: str) -> SessionParticipant | None:
        return next((p for p in self.participants if p.user_id == user_id), None)


class SessionViews(BaseModel):
    matched: list[Restaurant] = Field(default_factory=list)
    liked: list[Restaurant] = Field(default_factory=list)
    disliked: list[Restaurant] = Field(default_factory=list)


class SessionProgress(BaseModel):
    total_participants: int
    participants_completed: int
    matched_count: int


class ParticipantProgress(BaseModel):
    liked: int
    disliked: int
    total: int


# ── API bodies ──────────────────────────────────────────────────────────


class CreateSessionRequest(BaseModel):
    session_name: str = Field(..., min_length=1, max_length=100)
    preferences: PreferenceSet = Field(default_factory=PreferenceSet)
    location: Coordinate


class VoteRequest(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    vote: SwipeDirection


class SessionOut(BaseModel):
    session: Session
    effective_status: SessionStatus
