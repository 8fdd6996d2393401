from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import DEFAULT_GOOGLE_CONFIG, GooglePlacesConfig

logger = logging.getLogger(__name__)


class RatingsUnavailable(Exception):
    """Google Places is not configured."""


def _fetch_one(client: httpx.Client, place_id: str, config: GooglePlacesConfig) -> dict[str, Any]:
    try:
        response = client.get(
            f"{config.base_url}/{place_id}",
            headers={
                "X-Goog-Api-Key": config.api_key,
                "X-Goog-FieldMask": "rating,userRatingCount",
            },
        )
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("Rating lookup failed for %s", place_id, exc_info=True)
        return {"place_id": place_id}
    return {
        "place_id": place_id,
        "rating": data.get("rating"),
        "user_ratings_total": data.get("userRatingCount"),
    }


def fetch_ratings(
    place_ids: list[str],
    config: GooglePlacesConfig = DEFAULT_GOOGLE_CONFIG,
    client: httpx.Client | None = None,
) -> list[dict[str, Any]]:
    """
    Look up Google ratings for the first ``config.max_places`` place ids.

    A failed lookup yields an entry with only ``place_id`` so callers can
    still line results up with their input.
    """
    if not config.api_key:
        raise RatingsUnavailable("Google API key not configured")

    ids = [pid for pid in place_ids if pid and pid != "N/A"][: config.max_places]
    if not ids:
        return []

    owns_client = client is None
    client = client or httpx.Client(timeout=config.timeout)
    try:
        return [_fetch_one(client, pid, config) for pid in ids]
    finally:
        if owns_client:
            client.close()
