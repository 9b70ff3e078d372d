from __future__ import annotations

from pydantic import BaseModel, Field

from ..catalog.models import Coordinate, Restaurant
from ..preferences.models import PreferenceSet
from .engine import SwipeDirection, SwipeState


class SearchRequest(BaseModel):
    location: Coordinate
    preferences: PreferenceSet = Field(default_factory=PreferenceSet)


class SearchResponse(BaseModel):
    restaurants: list[Restaurant]
    total: int


class SwipeDecisionRequest(BaseModel):
    direction: SwipeDirection


class SwipeDecisionResponse(BaseModel):
    accepted: bool
    state: SwipeState
