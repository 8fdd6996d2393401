from __future__ import annotations

import time

from ..analytics.store import record_event
from .cache import search_cache
from .config import MAX_PLACES_LIMIT
from .models import Place, PlaceFilter
from .query import build_query
from .store import PlaceStore, get_store


def search_places(
    place_filter: PlaceFilter,
    store: PlaceStore | None = None,
    limit: int = MAX_PLACES_LIMIT,
) -> list[Place]:
    """Return places matching ``place_filter``, capped at ``limit`` rows.

    An empty filter (or one whose values all sanitize away) returns the
    unfiltered table. ``favorites`` is ignored here; the client resolves it.
    Raises ``PlaceStoreError`` when the store cannot be read.

    Only lookups against the configured store at the default cap are cached.
    """
    start_time = time.time()
    use_cache = store is None and limit == MAX_PLACES_LIMIT
    store = store or get_store()

    if use_cache:
        cached = search_cache.get(place_filter)
        if cached is not None:
            _record_search(place_filter, len(cached), start_time, cache_hit=True)
            return cached

    query = build_query(place_filter)
    if query.is_unconstrained:
        places = store.all(limit=limit)
    else:
        places = store.query(query, limit=limit)

    if use_cache:
        search_cache.set(place_filter, places)
    _record_search(place_filter, len(places), start_time, cache_hit=False)
    return places


def _record_search(place_filter: PlaceFilter, count: int, start_time: float, cache_hit: bool) -> None:
    record_event("search", {
        "filter": place_filter.model_dump(exclude_none=True),
        "results_returned": count,
        "response_time_ms": round((time.time() - start_time) * 1000, 1),
        "cache_hit": cache_hit,
    })
