from __future__ import annotations

from fastapi.testclient import TestClient

from dinematch.app import app
from dinematch.auth.users import authenticate

client = TestClient(app)


def _login_user(c):
    c.post("/auth/login", json={"username": "alice", "password": "alice123"})


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


# ── Identity provider ────────────────────────────────────────────────────


def test_authenticate_returns_identity():
    user = authenticate("bob", "bob123")
    assert user == {"user_id": "user-bob", "username": "bob", "name": "Bob", "role": "user"}


def test_authenticate_rejects_bad_password():
    assert authenticate("bob", "alice123") is None
    assert authenticate("nobody", "x") is None


# ── Login / Logout ───────────────────────────────────────────────────────


def test_login_success_user():
    resp = client.post("/auth/login", json={"username": "alice", "password": "alice123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["user"]["username"] == "alice"
    assert body["user"]["user_id"] == "user-alice"
    assert body["user"]["role"] == "user"


def test_login_success_admin():
    resp = client.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "admin"


def test_login_wrong_password():
    resp = client.post("/auth/login", json={"username": "alice", "password": "wrong"})
    assert resp.status_code == 401


def test_login_unknown_user():
    resp = client.post("/auth/login", json={"username": "nobody", "password": "x"})
    assert resp.status_code == 401


def test_login_validation():
    resp = client.post("/auth/login", json={"username": "", "password": "x"})
    assert resp.status_code == 422


def test_auth_me_when_logged_in():
    _login_user(client)
    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Alice"


def test_auth_me_not_logged_in():
    c = TestClient(app)  # fresh client, no session
    resp = c.get("/auth/me")
    assert resp.status_code == 401


def test_logout():
    _login_user(client)
    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert resp.json()["status"] == "logged_out"
    # Session should be cleared
    resp = client.get("/auth/me")
    assert resp.status_code == 401


# ── Route protection ─────────────────────────────────────────────────────


def test_sessions_require_login():
    c = TestClient(app)
    resp = c.post("/sessions", json={
        "session_name": "Lunch",
        "location": {"latitude": 37.7749, "longitude": -122.4194},
    })
    assert resp.status_code == 401


def test_swipe_requires_login():
    c = TestClient(app)
    assert c.get("/swipe").status_code == 401


def test_analytics_requires_admin():
    c = TestClient(app)
    _login_user(c)
    resp = c.get("/analytics")
    assert resp.status_code == 403


def test_analytics_allowed_for_admin():
    c = TestClient(app)
    _login_admin(c)
    resp = c.get("/analytics")
    assert resp.status_code == 200


def test_cache_stats_requires_admin():
    c = TestClient(app)
    _login_user(c)
    resp = c.get("/cache/stats")
    assert resp.status_code == 403


def test_purge_requires_admin():
    c = TestClient(app)
    _login_user(c)
    assert c.post("/sessions/purge-expired").status_code == 403


# ── Public endpoints stay public ─────────────────────────────────────────


def test_health_is_public():
    c = TestClient(app)
    resp = c.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
