from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from halalmap.app import app
from halalmap.auth.users import UserExists, authenticate, create_user

client = TestClient(app)


def _login_user(c):
    c.post("/auth/login", json={"username": "user", "password": "user123"})


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


def _fresh_name() -> str:
    return f"guest_{uuid.uuid4().hex[:8]}"


# ── Login / Logout ───────────────────────────────────────────────────────


def test_login_success_user():
    resp = client.post("/auth/login", json={"username": "user", "password": "user123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["user"]["username"] == "user"
    assert body["user"]["role"] == "user"


def test_login_success_admin():
    resp = client.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "admin"


def test_login_wrong_password():
    resp = client.post("/auth/login", json={"username": "user", "password": "wrong"})
    assert resp.status_code == 401


def test_login_unknown_user():
    resp = client.post("/auth/login", json={"username": "nobody", "password": "x"})
    assert resp.status_code == 401


def test_auth_me_when_logged_in():
    _login_user(client)
    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.json()["username"] == "user"


def test_auth_me_not_logged_in():
    c = TestClient(app)  # fresh client, no session
    resp = c.get("/auth/me")
    assert resp.status_code == 401


def test_logout():
    _login_user(client)
    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert resp.json()["status"] == "logged_out"
    resp = client.get("/auth/me")
    assert resp.status_code == 401


# ── Signup ───────────────────────────────────────────────────────────────


def test_signup_creates_session():
    c = TestClient(app)
    name = _fresh_name()
    resp = c.post("/auth/signup", json={"username": name, "password": "bismillah"})
    assert resp.status_code == 201
    assert resp.json()["user"] == {"username": name, "role": "user"}
    assert c.get("/auth/me").json()["username"] == name


def test_signup_duplicate_is_409():
    c = TestClient(app)
    resp = c.post("/auth/signup", json={"username": "admin", "password": "whatever1"})
    assert resp.status_code == 409


def test_signup_short_password_is_400():
    c = TestClient(app)
    resp = c.post("/auth/signup", json={"username": _fresh_name(), "password": "abc"})
    assert resp.status_code == 400


def test_create_user_rejects_bad_username():
    with pytest.raises(ValueError):
        create_user("a b", "password1")


def test_create_user_duplicate_case_insensitive():
    name = _fresh_name()
    create_user(name, "password1")
    with pytest.raises(UserExists):
        create_user(name.upper(), "password1")


def test_authenticate():
    name = _fresh_name()
    create_user(name, "password1")
    assert authenticate(name, "password1") == {"username": name, "role": "user"}
    assert authenticate(name, "password2") is None


# ── Route protection ─────────────────────────────────────────────────────


def test_suggestions_list_requires_login():
    c = TestClient(app)
    assert c.get("/api/places/suggestions").status_code == 401


def test_suggestions_list_forbidden_for_user():
    c = TestClient(app)
    _login_user(c)
    assert c.get("/api/places/suggestions").status_code == 403


def test_suggestions_list_allowed_for_admin():
    c = TestClient(app)
    _login_admin(c)
    assert c.get("/api/places/suggestions").status_code == 200


def test_public_routes_do_not_require_login():
    c = TestClient(app)
    assert c.get("/api/places").status_code == 200
    assert c.post("/api/places/search", json={"filter": {}}).status_code == 200
