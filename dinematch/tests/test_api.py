from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from dinematch.app import app, session_service
from dinematch.catalog.fake import FakeCatalog
from dinematch.errors import CatalogError
from dinematch.sessions.models import utcnow

client = TestClient(app)

SF = {"latitude": 37.7749, "longitude": -122.4194}


def _login_user(c, username="alice"):
    c.post("/auth/login", json={"username": username, "password": f"{username}123"})


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


def _clients():
    alice, bob = TestClient(app), TestClient(app)
    _login_user(alice, "alice")
    _login_user(bob, "bob")
    return alice, bob


def _create_session(c, **prefs):
    resp = c.post("/sessions", json={
        "session_name": "Friday dinner",
        "location": SF,
        "preferences": prefs,
    })
    assert resp.status_code == 201
    return resp.json()["session"]


@pytest.fixture(autouse=True)
def _fake_catalog():
    with patch("dinematch.app._catalog", FakeCatalog()):
        yield


# ── Health / search ──────────────────────────────────────────────────────


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "catalog": "fake"}


def test_search_applies_preferences():
    _login_user(client)
    resp = client.post("/restaurants/search", json={
        "location": SF,
        "preferences": {"max_distance": 5, "price_range": "budget", "excluded_cuisines": ["tacos"]},
    })
    assert resp.status_code == 200
    body = resp.json()
    assert [r["id"] for r in body["restaurants"]] == ["mock-3"]
    assert body["total"] == 1


def test_search_rejects_bad_preferences():
    _login_user(client)
    resp = client.post("/restaurants/search", json={"location": SF, "preferences": {"max_distance": -1}})
    assert resp.status_code == 422


def test_search_catalog_failure_is_bad_gateway():
    _login_user(client)
    broken = MagicMock()
    broken.name = "broken"
    broken.fetch.side_effect = CatalogError()
    with patch("dinematch.app._catalog", broken):
        resp = client.post("/restaurants/search", json={"location": {"latitude": 1.0, "longitude": 2.0}})
    assert resp.status_code == 502
    assert resp.json()["error"] == "CATALOG_UNAVAILABLE"


# ── Location ─────────────────────────────────────────────────────────────


def test_resolve_device_location():
    _login_user(client)
    resp = client.post("/location/resolve", json=SF)
    assert resp.status_code == 200
    assert resp.json() == SF


def test_resolve_without_permission():
    _login_user(client)
    resp = client.post("/location/resolve", json={})
    assert resp.status_code == 403
    assert resp.json()["error"] == "LOCATION_PERMISSION_DENIED"


def test_resolve_invalid_postal_code():
    _login_user(client)
    resp = client.post("/location/resolve", json={"postal_code": "ABC"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "INVALID_POSTAL_CODE"


@patch("dinematch.location.service.requests.get")
def test_resolve_postal_code(mock_get):
    mock_get.return_value.json.return_value = {
        "status": "OK",
        "results": [{"geometry": {"location": {"lat": 40.7506, "lng": -73.9972}}}],
    }
    _login_user(client)
    resp = client.post("/location/resolve", json={"postal_code": "10001"})
    assert resp.status_code == 200
    assert resp.json() == {"latitude": 40.7506, "longitude": -73.9972}


# ── Solo swipe ───────────────────────────────────────────────────────────


class TestSoloSwipe:
    def test_swipe_flow(self):
        c = TestClient(app)
        _login_user(c)
        state = c.post("/swipe/start", json={"location": SF, "preferences": {"max_distance": 5}}).json()
        assert state["total"] == 8
        assert state["current"]["id"] == "mock-1"

        resp = c.post("/swipe/decide", json={"direction": "like"})
        assert resp.json()["accepted"] is True
        c.post("/swipe/decide", json={"direction": "dislike"})

        undone = c.post("/swipe/undo").json()
        assert undone["accepted"] is True
        assert undone["state"]["cursor"] == 1
        assert [r["id"] for r in undone["state"]["liked"]] == ["mock-1"]

        current = c.get("/swipe").json()
        assert current["current"]["id"] == "mock-2"

    def test_decide_past_end_not_accepted(self):
        c = TestClient(app)
        _login_user(c)
        c.post("/swipe/start", json={"location": SF, "preferences": {"excluded_cuisines": ["restaurant"]}})
        resp = c.post("/swipe/decide", json={"direction": "like"})
        assert resp.json()["accepted"] is True  # Corner Bakery is the only one left
        resp = c.post("/swipe/decide", json={"direction": "like"})
        assert resp.json()["accepted"] is False
        assert resp.json()["state"]["finished"] is True

    def test_no_swipe_in_progress(self):
        c = TestClient(app)
        _login_user(c, "carol")
        assert c.get("/swipe").status_code == 404


# ── Group sessions ───────────────────────────────────────────────────────


class TestGroupSession:
    def test_full_flow(self):
        alice, bob = _clients()
        session = _create_session(alice, max_distance=5)
        sid = session["id"]
        assert session["status"] == "waiting"

        joined = bob.post(f"/sessions/{sid}/join").json()
        assert len(joined["session"]["participants"]) == 2

        assigned = alice.post(f"/sessions/{sid}/restaurants")
        assert assigned.status_code == 200
        assert len(assigned.json()["session"]["restaurants"]) == 8

        assert alice.post(f"/sessions/{sid}/start").json()["session"]["status"] == "active"

        for c in (alice, bob):
            c.post(f"/sessions/{sid}/votes", json={"restaurant_id": "mock-1", "vote": "like"})
        alice.post(f"/sessions/{sid}/votes", json={"restaurant_id": "mock-2", "vote": "like"})
        bob.post(f"/sessions/{sid}/votes", json={"restaurant_id": "mock-2", "vote": "dislike"})

        results = alice.get(f"/sessions/{sid}/results").json()
        assert [r["id"] for r in results["matched"]] == ["mock-1"]
        assert [r["id"] for r in results["liked"]] == ["mock-1", "mock-2"]
        assert [r["id"] for r in results["disliked"]] == ["mock-2"]

        progress = bob.get(f"/sessions/{sid}/progress").json()
        assert progress == {"total_participants": 2, "participants_completed": 0, "matched_count": 1}

        mine = bob.get(f"/sessions/{sid}/participants/me/progress").json()
        assert mine == {"liked": 1, "disliked": 1, "total": 8}

        done = alice.post(f"/sessions/{sid}/complete").json()
        assert done["session"]["status"] == "completed"

    def test_join_twice_keeps_one_record(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        bob.post(f"/sessions/{sid}/join")
        again = bob.post(f"/sessions/{sid}/join").json()
        user_ids = [p["user_id"] for p in again["session"]["participants"]]
        assert user_ids == ["user-alice", "user-bob"]

    def test_http_members_follow_by_polling(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        bob.post(f"/sessions/{sid}/join")
        assert session_service.active_syncs(sid) == []
        polled = alice.get(f"/sessions/{sid}").json()
        assert [p["user_id"] for p in polled["session"]["participants"]] == ["user-alice", "user-bob"]

    def test_join_unknown_session(self):
        _, bob = _clients()
        resp = bob.post("/sessions/does-not-exist/join")
        assert resp.status_code == 404
        assert resp.json()["error"] == "SESSION_NOT_FOUND"

    def test_join_completed_session(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        alice.post(f"/sessions/{sid}/start")
        alice.post(f"/sessions/{sid}/complete")
        resp = bob.post(f"/sessions/{sid}/join")
        assert resp.status_code == 409
        assert resp.json()["error"] == "SESSION_CLOSED"

    def test_only_host_fetches_restaurants(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        bob.post(f"/sessions/{sid}/join")
        resp = bob.post(f"/sessions/{sid}/restaurants")
        assert resp.status_code == 403
        assert resp.json()["error"] == "NOT_SESSION_HOST"

    def test_invalid_transition(self):
        alice, _ = _clients()
        sid = _create_session(alice)["id"]
        resp = alice.post(f"/sessions/{sid}/complete")
        assert resp.status_code == 409
        assert resp.json()["error"] == "INVALID_STATUS_TRANSITION"

    def test_leave_and_collapse(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        bob.post(f"/sessions/{sid}/join")

        assert alice.post(f"/sessions/{sid}/leave").json()["status"] == "ignored"
        assert bob.post(f"/sessions/{sid}/leave").json()["status"] == "left"
        assert alice.post(f"/sessions/{sid}/leave").json() == {"status": "left", "session": None}
        assert alice.get(f"/sessions/{sid}").status_code == 404

    def test_vote_from_non_participant_is_ignored(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        resp = bob.post(f"/sessions/{sid}/votes", json={"restaurant_id": "mock-1", "vote": "like"})
        assert resp.status_code == 200
        assert [p["user_id"] for p in resp.json()["session"]["participants"]] == ["user-alice"]

    def test_vote_validation(self):
        alice, _ = _clients()
        sid = _create_session(alice)["id"]
        resp = alice.post(f"/sessions/{sid}/votes", json={"restaurant_id": "mock-1", "vote": "maybe"})
        assert resp.status_code == 422

    def test_expired_session_is_gone(self):
        alice, bob = _clients()
        sid = _create_session(alice)["id"]
        later = utcnow() + timedelta(hours=2)
        with patch.object(session_service, "_clock", lambda: later):
            resp = bob.post(f"/sessions/{sid}/join")
        assert resp.status_code == 410
        assert resp.json()["error"] == "SESSION_EXPIRED"
        assert alice.get(f"/sessions/{sid}").status_code == 404

    def test_admin_purges_expired_sessions(self):
        alice, _ = _clients()
        sid = _create_session(alice)["id"]
        admin = TestClient(app)
        _login_admin(admin)
        later = utcnow() + timedelta(hours=2)
        with patch.object(session_service, "_clock", lambda: later):
            removed = admin.post("/sessions/purge-expired").json()["removed"]
        assert removed >= 1
        assert alice.get(f"/sessions/{sid}").status_code == 404
