from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, Field

from ..catalog.models import Restaurant

logger = logging.getLogger(__name__)


class SwipeDirection(str, Enum):
    like = "like"
    dislike = "dislike"


class SwipeState(BaseModel):
    current: Restaurant | None = None
    cursor: int
    total: int
    liked: list[Restaurant] = Field(default_factory=list)
    progress: float = Field(..., ge=0.0, le=1.0)
    finished: bool


class SwipeEngine:
    """Sequential decision walker over a fixed candidate list.

    Operations that make no sense in the current state (deciding past the
    end, undoing at the start) are ignored and return ``False`` rather than
    raising: double taps and stale UI callbacks must not corrupt the walk.
    """

    def __init__(self, candidates: Sequence[Restaurant] = ()) -> None:
        self._candidates: tuple[Restaurant, ...] = tuple(candidates)
        self._cursor = 0
        self._liked: list[Restaurant] = []
        self._history: list[SwipeDirection] = []
        self._finished = False

    @property
    def candidates(self) -> tuple[Restaurant, ...]:
        return self._candidates

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def liked(self) -> list[Restaurant]:
        return list(self._liked)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def remaining(self) -> int:
        return len(self._candidates) - self._cursor

    def current_candidate(self) -> Restaurant | None:
        if 0 <= self._cursor < len(self._candidates):
            return self._candidates[self._cursor]
        return None

    def decide(self, direction: SwipeDirection) -> bool:
        restaurant = self.current_candidate()
        if restaurant is None:
            logger.debug("Ignoring %s with no current candidate", direction.value)
            return False

        if direction == SwipeDirection.like:
            self._liked.append(restaurant)
        self._history.append(direction)
        self._cursor += 1

        if self._cursor == len(self._candidates):
            self._finished = True
            logger.info("Finished swiping through %d restaurants", len(self._candidates))
        return True

    def like(self) -> bool:
        return self.decide(SwipeDirection.like)

    def dislike(self) -> bool:
        return self.decide(SwipeDirection.dislike)

    def undo(self) -> bool:
        if self._cursor == 0 or not self._history:
            return False

        last = self._history.pop()
        self._cursor -= 1
        if last == SwipeDirection.like:
            self._liked.pop()
        self._finished = False
        return True

    def finish(self) -> None:
        """Mark the walk as complete, e.g. when the diner stops early."""
        self._finished = True

    def progress(self) -> float:
        if not self._candidates:
            return 0.0
        return self._cursor / len(self._candidates)

    def snapshot(self) -> SwipeState:
        return SwipeState(
            current=self.current_candidate(),
            cursor=self._cursor,
            total=len(self._candidates),
            liked=self.liked,
            progress=self.progress(),
            finished=self._finished,
        )
