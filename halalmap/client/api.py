from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from ..chat.models import ChatContext, ChatResponse
from ..places.models import Place, PlaceFilter
from .config import DEFAULT_CLIENT_CONFIG, ClientConfig


class APIError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(APIError):
    def __init__(self, retry_after: int | None) -> None:
        super().__init__("Rate limited", status_code=429)
        self.retry_after = retry_after


def _payload(response: httpx.Response) -> dict[str, Any]:
    # Proxies can answer with HTML; only JSON objects are trusted.
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError as exc:
        raise APIError("Server returned an invalid response.", response.status_code) from exc
    return data if isinstance(data, dict) else {}


def _raise_for_error(response: httpx.Response, data: dict[str, Any], what: str) -> None:
    if not response.is_error:
        return
    message = data.get("error")
    if not isinstance(message, str) or not message:
        # Validation errors carry a list of issues; only plain-text details are shown.
        detail = data.get("detail")
        if response.status_code == 422:
            message = f"{what} was rejected by the server."
        elif isinstance(detail, str) and detail:
            message = detail
        else:
            message = f"{what} failed. ({response.status_code})"
    raise APIError(message, response.status_code)


class HalalMapClient:
    """Async client for the halal map API."""

    def __init__(
        self,
        config: ClientConfig = DEFAULT_CLIENT_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> HalalMapClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def chat(
        self,
        turns: list[dict[str, str]],
        context: ChatContext | None = None,
    ) -> ChatResponse:
        body: dict[str, Any] = {"messages": turns}
        if context is not None:
            body["context"] = context.model_dump(mode="json", by_alias=True, exclude_none=True)
        response = await self._client.post("/api/chat", json=body)
        data = _payload(response)
        if response.status_code == 429:
            retry_after = data.get("retryAfter")
            raise RateLimitedError(retry_after if isinstance(retry_after, int) else None)
        _raise_for_error(response, data, "Chat request")
        try:
            return ChatResponse.model_validate(data)
        except ValidationError as exc:
            raise APIError("Server returned an invalid response.", response.status_code) from exc

    async def list_places(self) -> list[Place]:
        response = await self._client.get("/api/places")
        data = _payload(response)
        _raise_for_error(response, data, "Loading places")
        return [Place.model_validate(p) for p in data.get("places") or []]

    async def search(self, place_filter: PlaceFilter) -> list[Place]:
        response = await self._client.post(
            "/api/places/search",
            json={"filter": place_filter.model_dump(exclude_none=True)},
        )
        data = _payload(response)
        _raise_for_error(response, data, "Search")
        return [Place.model_validate(p) for p in data.get("places") or []]

    async def ratings(self, place_ids: list[str]) -> list[dict[str, Any]]:
        response = await self._client.post("/api/places/ratings", json={"placeIds": place_ids})
        data = _payload(response)
        _raise_for_error(response, data, "Ratings")
        return list(data.get("ratings") or [])

    async def suggest(self, suggestion: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post("/api/places/suggest", json=suggestion)
        data = _payload(response)
        _raise_for_error(response, data, "Suggestion")
        return data
