from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from ..chat.models import PlaceDigest
from ..places.models import Place, PlaceFilter
from .api import APIError, HalalMapClient
from .config import DEFAULT_CLIENT_CONFIG, ClientConfig
from .storage import FavoritesStore

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = "Search failed. Please try again."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."

Listener = Callable[["PlaceBrowser"], None]


class PlaceBrowser:
    """
    The set of places currently on the map.

    Filters from chat land here. Favorites are resolved against the locally
    held full list; every other filter goes to the search endpoint. A failed
    search keeps the previous result set on screen.

    Every ``apply_filter`` call starts a new generation. A search that
    returns after a newer generation began is dropped, along with its error
    and its ``loading`` change.
    """

    def __init__(
        self,
        api: HalalMapClient,
        favorites: FavoritesStore,
        initial_places: list[Place] | None = None,
        config: ClientConfig = DEFAULT_CLIENT_CONFIG,
    ) -> None:
        self.api = api
        self.favorites = favorites
        self.config = config
        self.initial_places: list[Place] = list(initial_places or [])
        self.places: list[Place] = list(self.initial_places)
        self.active_filter = PlaceFilter()
        self.loading = False
        self.search_error: str | None = None
        self.selected: Place | None = None
        self._listeners: list[Listener] = []
        self._generation = 0

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    async def load_initial(self) -> None:
        try:
            places = await self.api.list_places()
        except (APIError, httpx.HTTPError):
            logger.warning("Initial place load failed", exc_info=True)
            self.search_error = NETWORK_ERROR_MESSAGE
            return
        self.initial_places = places
        self.places = list(places)
        self._notify()

    def _show(self, places: list[Place]) -> None:
        self.places = places
        if self.selected and not any(p.id == self.selected.id for p in places):
            self.selected = None
        self._notify()

    def cancel_pending(self) -> None:
        """Drop the result of any search still in flight."""
        self._generation += 1
        self.loading = False

    async def apply_filter(self, place_filter: PlaceFilter) -> None:
        self._generation += 1
        generation = self._generation
        self.active_filter = place_filter
        self.search_error = None

        if place_filter.is_empty():
            self.loading = False
            self._show(list(self.initial_places))
            return

        if place_filter.favorites:
            ids = set(self.favorites.all())
            self.loading = False
            self._show([p for p in self.initial_places if p.id in ids])
            return

        self.loading = True
        try:
            places = await self.api.search(place_filter)
        except APIError:
            if generation != self._generation:
                return
            logger.warning("Place search failed", exc_info=True)
            self.loading = False
            self.search_error = SEARCH_FAILED_MESSAGE
            return
        except httpx.HTTPError:
            if generation != self._generation:
                return
            logger.warning("Place search network error", exc_info=True)
            self.loading = False
            self.search_error = NETWORK_ERROR_MESSAGE
            return

        if generation != self._generation:
            logger.debug("Dropping stale search result for %s", place_filter)
            return
        self.loading = False
        self._show(places)

    def dismiss_error(self) -> None:
        self.search_error = None

    # ── Selection ────────────────────────────────────────────────────────

    def select(self, place: Place | None) -> None:
        self.selected = place
        self._notify()

    def select_by_name(self, name: str) -> Place | None:
        """Select a place by exact name, looking at displayed places first."""
        place = next((p for p in self.places if p.name == name), None)
        if place is None:
            place = next((p for p in self.initial_places if p.name == name), None)
        if place is not None:
            self.select(place)
        return place

    # ── Views ────────────────────────────────────────────────────────────

    def visible_places(self) -> list[Place]:
        if self.loading:
            return []
        return self.places[: self.config.max_display_places]

    def favorite_places(self) -> list[Place]:
        ids = self.favorites.all()
        by_id = {p.id: p for p in self.initial_places}
        return [by_id[pid] for pid in ids if pid in by_id]

    def digest(self) -> list[PlaceDigest]:
        return [
            PlaceDigest(
                name=p.name,
                cuisine=p.cuisine_label,
                city=p.city,
                price=p.price_level,
                rating=p.rating,
                rating_count=p.rating_count,
            )
            for p in self.places[: self.config.max_context_places]
        ]

    async def load_ratings(self) -> None:
        """Attach Google ratings to the first displayed places."""
        shown = self.places[: self.config.max_display_places]
        ids = [p.place_id for p in shown if p.place_id]
        if not ids:
            return
        generation = self._generation
        try:
            ratings = await self.api.ratings(ids)
        except (APIError, httpx.HTTPError):
            logger.warning("Ratings lookup failed", exc_info=True)
            return
        if generation != self._generation:
            return
        by_place_id = {r.get("place_id"): r for r in ratings}
        updated: list[Place] = []
        for place in self.places:
            r = by_place_id.get(place.place_id)
            if r and r.get("rating") is not None:
                place = place.model_copy(update={
                    "rating": r["rating"],
                    "rating_count": r.get("user_ratings_total"),
                })
            updated.append(place)
        self.places = updated
        self._notify()
