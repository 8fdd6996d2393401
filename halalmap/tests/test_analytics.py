from __future__ import annotations

from fastapi.testclient import TestClient

from halalmap.analytics.aggregator import compute_analytics
from halalmap.analytics.store import clear_events, get_events, record_event
from halalmap.app import app
from halalmap.places.cache import search_cache

client = TestClient(app)


def _login_user(c):
    c.post("/auth/login", json={"username": "user", "password": "user123"})


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


def test_analytics_returns_empty_initially():
    clear_events()
    _login_admin(client)
    resp = client.get("/analytics")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_searches"] == 0
    assert body["total_chats"] == 0
    assert body["avg_response_time_ms"] == 0.0
    assert body["fallback_rate"] == 0.0


def test_analytics_tracks_search():
    clear_events()
    search_cache.clear()
    _login_admin(client)
    client.post("/api/places/search", json={"filter": {"cuisine_subtype": "ramen", "keyword": "Asakusa"}})
    body = client.get("/analytics").json()
    assert body["total_searches"] == 1
    assert body["top_cuisines"] == [{"name": "Ramen", "count": 1}]
    assert body["top_keywords"] == [{"name": "Asakusa", "count": 1}]
    assert body["filter_usage"]["cuisine_subtype"] == 100.0
    assert body["filter_usage"]["tag"] == 0.0


def test_analytics_tracks_suggestions():
    clear_events()
    _login_admin(client)
    client.post("/api/places/suggest", json={"name": "Halal Soba Kanda", "address": "2-1 Kanda"})
    assert client.get("/analytics").json()["total_suggestions"] == 1


def test_analytics_requires_admin():
    c = TestClient(app)
    assert c.get("/analytics").status_code == 401
    _login_user(c)
    assert c.get("/analytics").status_code == 403


def test_get_events_by_type():
    clear_events()
    record_event("search", {"filter": {}})
    record_event("chat", {"outcome": "resolved"})
    assert [e["type"] for e in get_events()] == ["search", "chat"]
    assert len(get_events("chat")) == 1


def test_chat_outcomes_and_fallback_rate():
    events = [
        {"type": "chat", "outcome": "resolved", "inferred": False},
        {"type": "chat", "outcome": "malformed", "inferred": True},
        {"type": "chat", "outcome": "unreachable", "inferred": True},
        {"type": "chat", "outcome": "rate_limited", "inferred": False},
    ]
    result = compute_analytics(events)
    assert result["total_chats"] == 4
    assert result["chat_outcomes"] == {"resolved": 1, "malformed": 1, "unreachable": 1, "rate_limited": 1}
    assert result["fallback_rate"] == 50.0


def test_cache_hit_rate_from_events():
    events = [
        {"type": "search", "filter": {"tag": "spicy"}, "response_time_ms": 4.0, "cache_hit": False},
        {"type": "search", "filter": {"tag": "spicy"}, "response_time_ms": 0.0, "cache_hit": True},
    ]
    result = compute_analytics(events)
    assert result["avg_response_time_ms"] == 2.0
    assert result["cache_stats"] == {"hits": 1, "misses": 1, "hit_rate": 50.0}
    assert result["filter_usage"]["tag"] == 100.0
