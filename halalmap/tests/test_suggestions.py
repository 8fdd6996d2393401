from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from halalmap.app import app
from halalmap.suggestions.intake import (
    REQUIRED_MESSAGE,
    InvalidSuggestion,
    clear_suggestions,
    get_suggestions,
    submit_suggestion,
)
from halalmap.suggestions.models import SuggestionRequest

client = TestClient(app)


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


def test_submit_success():
    clear_suggestions()
    resp = client.post("/api/places/suggest", json={
        "name": "Halal Soba Kanda",
        "address": "2-1 Kanda, Chiyoda-ku",
        "city": "Tokyo",
        "cuisineType": "Soba",
        "halalStatus": "Muslim Friendly",
        "submitterEmail": "someone@example.com",
    })
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Suggestion submitted successfully"}

    (stored,) = get_suggestions()
    assert stored.status == "pending"
    assert stored.cuisine_type == "Soba"
    assert stored.submitter_email == "someone@example.com"


def test_missing_address_is_400():
    clear_suggestions()
    resp = client.post("/api/places/suggest", json={"name": "Halal Soba Kanda"})
    assert resp.status_code == 400
    assert resp.json() == {"error": REQUIRED_MESSAGE}
    assert get_suggestions() == []


def test_blank_name_is_400():
    resp = client.post("/api/places/suggest", json={"name": "   ", "address": "somewhere"})
    assert resp.status_code == 400


def test_fields_truncated():
    clear_suggestions()
    suggestion = submit_suggestion(SuggestionRequest(
        name="N" * 300,
        address="A" * 600,
        notes="x" * 2000,
        phone="0" * 80,
    ))
    assert len(suggestion.name) == 200
    assert len(suggestion.address) == 500
    assert len(suggestion.notes) == 1000
    assert len(suggestion.phone) == 50


def test_optional_blank_fields_become_none():
    suggestion = submit_suggestion(SuggestionRequest(name="X", address="Y", city="  "))
    assert suggestion.city is None


def test_intake_raises_invalid_suggestion():
    with pytest.raises(InvalidSuggestion):
        submit_suggestion(SuggestionRequest(name="Only a name"))


def test_admin_can_list_suggestions():
    clear_suggestions()
    client.post("/api/places/suggest", json={"name": "Halal Soba Kanda", "address": "2-1 Kanda"})
    c = TestClient(app)
    _login_admin(c)
    resp = c.get("/api/places/suggestions")
    assert resp.status_code == 200
    assert [s["name"] for s in resp.json()["suggestions"]] == ["Halal Soba Kanda"]
