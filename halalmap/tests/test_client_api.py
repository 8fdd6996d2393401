from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from halalmap.chat.models import ChatContext
from halalmap.client.api import APIError, HalalMapClient, RateLimitedError
from halalmap.client.config import ClientConfig
from halalmap.places.models import PlaceFilter

CONFIG = ClientConfig(base_url="http://testserver")


def _client(handler) -> HalalMapClient:
    return HalalMapClient(CONFIG, transport=httpx.MockTransport(handler))


def _run(coro):
    return asyncio.run(coro)


def test_chat_sends_turns_and_camel_case_context():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"filter": {"tag": "spicy"}, "message": "Spicy!"})

    async def go():
        async with _client(handler) as api:
            context = ChatContext(last_filter=PlaceFilter(tag="spicy"))
            return await api.chat([{"role": "user", "content": "spicy"}], context)

    response = _run(go())
    assert seen["path"] == "/api/chat"
    assert seen["body"]["messages"] == [{"role": "user", "content": "spicy"}]
    assert seen["body"]["context"]["lastFilter"] == {"tag": "spicy"}
    assert response.filter.tag == "spicy"
    assert response.message == "Spicy!"


def test_chat_429_carries_retry_after():
    def handler(request):
        return httpx.Response(429, json={"error": "busy", "retryAfter": 4})

    with pytest.raises(RateLimitedError) as excinfo:
        _run(_client(handler).chat([{"role": "user", "content": "x"}]))
    assert excinfo.value.retry_after == 4
    assert excinfo.value.status_code == 429


def test_chat_429_without_retry_after():
    def handler(request):
        return httpx.Response(429, json={"error": "busy", "retryAfter": "soon"})

    with pytest.raises(RateLimitedError) as excinfo:
        _run(_client(handler).chat([{"role": "user", "content": "x"}]))
    assert excinfo.value.retry_after is None


def test_error_body_message_surfaces():
    def handler(request):
        return httpx.Response(502, json={"error": "Search failed: db down"})

    with pytest.raises(APIError, match="Search failed: db down"):
        _run(_client(handler).search(PlaceFilter(keyword="Ueno")))


def test_validation_detail_is_not_echoed():
    detail = [{"type": "too_long", "loc": ["body", "messages"], "input": ["x" * 5000]}]

    def handler(request):
        return httpx.Response(422, json={"detail": detail})

    with pytest.raises(APIError) as excinfo:
        _run(_client(handler).chat([{"role": "user", "content": "x"}]))
    assert str(excinfo.value) == "Chat request was rejected by the server."
    assert excinfo.value.status_code == 422


def test_plain_text_detail_surfaces():
    def handler(request):
        return httpx.Response(401, json={"detail": "Invalid credentials"})

    with pytest.raises(APIError, match="Invalid credentials"):
        _run(_client(handler).list_places())


def test_non_json_response_is_invalid():
    def handler(request):
        return httpx.Response(502, content=b"<html>Bad Gateway</html>")

    with pytest.raises(APIError, match="invalid response"):
        _run(_client(handler).list_places())


def test_chat_response_shape_checked():
    def handler(request):
        return httpx.Response(200, json={"message": "no filter key"})

    with pytest.raises(APIError, match="invalid response"):
        _run(_client(handler).chat([{"role": "user", "content": "x"}]))


def test_search_posts_filter_without_nulls():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"places": [{"id": 1, "name": "Lahore Grill Shibuya"}]})

    places = _run(_client(handler).search(PlaceFilter(cuisine_category="Pakistani")))
    assert seen["body"] == {"filter": {"cuisine_category": "Pakistani"}}
    assert places[0].id == "1"


def test_ratings_uses_camel_case_ids():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ratings": [{"place_id": "a", "rating": 4.0}]})

    ratings = _run(_client(handler).ratings(["a"]))
    assert seen["body"] == {"placeIds": ["a"]}
    assert ratings == [{"place_id": "a", "rating": 4.0}]
