from __future__ import annotations

import os

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events, record_event, record_session_event
from .auth.dependencies import require_admin, require_user
from .auth.models import LoginRequest
from .auth.users import authenticate
from .catalog.base import RestaurantCatalog
from .catalog.cache import get_cache_stats
from .catalog.fetcher import CatalogFetcher, build_catalog
from .catalog.models import Coordinate
from .errors import DomainError, ErrorCode, NotSessionHostError
from .location.config import DEFAULT_LOCATION_CONFIG
from .location.models import LocationRequest
from .location.service import GoogleGeocodingProvider, LocationService
from .sessions import coordinator
from .sessions.models import (
    CreateSessionRequest,
    ParticipantProgress,
    Session,
    SessionOut,
    SessionProgress,
    SessionViews,
    VoteRequest,
)
from .sessions.service import SessionService
from .sessions.store import InMemorySessionStore
from .swipe.engine import SwipeEngine, SwipeState
from .swipe.models import SearchRequest, SearchResponse, SwipeDecisionRequest, SwipeDecisionResponse
from .swipe.store import get_engine, set_engine

app = FastAPI(title="DineMatch API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=os.environ.get("SESSION_SECRET", "dinematch-secret-change-in-production"),
)

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.LOCATION_NOT_FOUND: 404,
    ErrorCode.SESSION_CLOSED: 409,
    ErrorCode.INVALID_STATUS_TRANSITION: 409,
    ErrorCode.CONFLICT: 409,
    ErrorCode.FETCH_SUPERSEDED: 409,
    ErrorCode.SESSION_EXPIRED: 410,
    ErrorCode.VALIDATION_FAILED: 422,
    ErrorCode.INVALID_POSTAL_CODE: 422,
    ErrorCode.NOT_SESSION_HOST: 403,
    ErrorCode.LOCATION_PERMISSION_DENIED: 403,
    ErrorCode.LOCATION_TIMEOUT: 504,
    ErrorCode.CATALOG_TIMEOUT: 504,
    ErrorCode.CATALOG_UNAVAILABLE: 502,
}

session_store = InMemorySessionStore()
session_service = SessionService(session_store)
session_service.add_observer(record_session_event)

_catalog: RestaurantCatalog = build_catalog()
# One latest-wins fetcher per user
_fetchers: dict[str, CatalogFetcher] = {}


def _fetcher_for(user_id: str) -> CatalogFetcher:
    fetcher = _fetchers.get(user_id)
    if fetcher is None or fetcher.catalog is not _catalog:
        fetcher = CatalogFetcher(_catalog)
        _fetchers[user_id] = fetcher
    return fetcher


def _session_out(session: Session) -> SessionOut:
    return SessionOut(session=session, effective_status=coordinator.effective_status(session))


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_BY_CODE.get(exc.code, 400),
        content={"error": exc.code.value, "detail": exc.message, "retryable": exc.retryable},
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "catalog": _catalog.name}


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Location and search ──────────────────────────────────────────────────


@app.post("/location/resolve", response_model=Coordinate)
async def resolve_location(
    body: LocationRequest,
    user: dict = Depends(require_user),
) -> Coordinate:
    device = None
    if body.latitude is not None and body.longitude is not None:
        device = Coordinate(latitude=body.latitude, longitude=body.longitude)
    service = LocationService(
        GoogleGeocodingProvider(DEFAULT_LOCATION_CONFIG, current=device),
        DEFAULT_LOCATION_CONFIG,
    )
    if body.postal_code:
        return await service.from_postal_code(body.postal_code)
    return await service.current()


@app.post("/restaurants/search", response_model=SearchResponse)
async def search_restaurants(
    body: SearchRequest,
    user: dict = Depends(require_user),
) -> SearchResponse:
    restaurants = await _fetcher_for(user["user_id"]).fetch(body.location, body.preferences)
    record_event("search", {
        "user_id": user["user_id"],
        "delivery_mode": body.preferences.delivery_mode.value,
        "results_count": len(restaurants),
    })
    return SearchResponse(restaurants=restaurants, total=len(restaurants))


# ── Solo swipe ───────────────────────────────────────────────────────────


def _require_engine(user: dict) -> SwipeEngine:
    engine = get_engine(user["user_id"])
    if engine is None:
        raise HTTPException(status_code=404, detail="No swipe in progress")
    return engine


@app.post("/swipe/start", response_model=SwipeState)
async def swipe_start(
    body: SearchRequest,
    user: dict = Depends(require_user),
) -> SwipeState:
    restaurants = await _fetcher_for(user["user_id"]).fetch(body.location, body.preferences)
    engine = SwipeEngine(restaurants)
    set_engine(user["user_id"], engine)
    record_event("swipe_started", {"user_id": user["user_id"], "candidates": len(restaurants)})
    return engine.snapshot()


@app.get("/swipe", response_model=SwipeState)
def swipe_state(user: dict = Depends(require_user)) -> SwipeState:
    return _require_engine(user).snapshot()


@app.post("/swipe/decide", response_model=SwipeDecisionResponse)
def swipe_decide(
    body: SwipeDecisionRequest,
    user: dict = Depends(require_user),
) -> SwipeDecisionResponse:
    engine = _require_engine(user)
    restaurant = engine.current_candidate()
    accepted = engine.decide(body.direction)
    if accepted:
        record_event("swipe", {
            "user_id": user["user_id"],
            "restaurant_id": restaurant.id,
            "vote": body.direction.value,
        })
    return SwipeDecisionResponse(accepted=accepted, state=engine.snapshot())


@app.post("/swipe/undo", response_model=SwipeDecisionResponse)
def swipe_undo(user: dict = Depends(require_user)) -> SwipeDecisionResponse:
    engine = _require_engine(user)
    return SwipeDecisionResponse(accepted=engine.undo(), state=engine.snapshot())


# ── Group sessions ───────────────────────────────────────────────────────


@app.post("/sessions", response_model=SessionOut, status_code=201)
def create_session(
    body: CreateSessionRequest,
    user: dict = Depends(require_user),
) -> SessionOut:
    session = session_service.create_session(
        user["user_id"], user["name"], body.session_name, body.preferences, body.location,
    )
    return _session_out(session)


@app.post("/sessions/purge-expired")
def purge_expired(user: dict = Depends(require_admin)) -> dict:
    return {"removed": session_service.purge_expired()}


@app.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(session_id: str, user: dict = Depends(require_user)) -> SessionOut:
    return _session_out(session_service.get_session(session_id))


@app.post("/sessions/{session_id}/join", response_model=SessionOut)
def join_session(session_id: str, user: dict = Depends(require_user)) -> SessionOut:
    session = session_service.join_session(session_id, user["user_id"], user["name"])
    return _session_out(session)


@app.post("/sessions/{session_id}/leave")
def leave_session(session_id: str, user: dict = Depends(require_user)) -> dict:
    session = session_service.leave_session(session_id, user["user_id"])
    if session is None:
        return {"status": "left", "session": None}
    # Host stays while others remain
    left = session.participant(user["user_id"]) is None
    return {
        "status": "left" if left else "ignored",
        "session": _session_out(session).model_dump(mode="json"),
    }


@app.post("/sessions/{session_id}/restaurants", response_model=SessionOut)
async def assign_restaurants(session_id: str, user: dict = Depends(require_user)) -> SessionOut:
    session = session_service.get_session(session_id)
    if session.host_user_id != user["user_id"]:
        raise NotSessionHostError(user["user_id"])
    restaurants = await _fetcher_for(user["user_id"]).fetch(session.location, session.preferences)
    session = session_service.assign_restaurants(session_id, user["user_id"], restaurants)
    return _session_out(session)


@app.post("/sessions/{session_id}/votes", response_model=SessionOut)
def vote(
    session_id: str,
    body: VoteRequest,
    user: dict = Depends(require_user),
) -> SessionOut:
    session_service.get_session(session_id)
    session = session_service.record_vote(session_id, body.restaurant_id, user["user_id"], body.vote)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _session_out(session)


@app.post("/sessions/{session_id}/start", response_model=SessionOut)
def start_session(session_id: str, user: dict = Depends(require_user)) -> SessionOut:
    return _session_out(session_service.start_session(session_id, user["user_id"]))


@app.post("/sessions/{session_id}/complete", response_model=SessionOut)
def complete_session(session_id: str, user: dict = Depends(require_user)) -> SessionOut:
    return _session_out(session_service.complete_session(session_id, user["user_id"]))


@app.get("/sessions/{session_id}/results", response_model=SessionViews)
def session_results(session_id: str, user: dict = Depends(require_user)) -> SessionViews:
    return session_service.views(session_id)


@app.get("/sessions/{session_id}/progress", response_model=SessionProgress)
def session_progress(session_id: str, user: dict = Depends(require_user)) -> SessionProgress:
    return session_service.progress(session_id)


@app.get("/sessions/{session_id}/participants/me/progress", response_model=ParticipantProgress)
def my_progress(session_id: str, user: dict = Depends(require_user)) -> ParticipantProgress:
    return session_service.participant_progress(session_id, user["user_id"])


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.get("/analytics")
def analytics(user: dict = Depends(require_admin)) -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats(user: dict = Depends(require_admin)) -> dict:
    return get_cache_stats()
