from __future__ import annotations

from typing import Any

from ..places.models import HALAL_STATUS, PlaceFilter
from .browser import PlaceBrowser

CERTIFIED = HALAL_STATUS["certified"].value
NO_ALCOHOL_TAG = "no-alcohol"

# Cuisine menu entry -> the filter slot it sets.
CUISINE_OPTIONS: dict[str, str] = {
    "Ramen": "cuisine_subtype",
    "Yakiniku": "cuisine_subtype",
    "Sushi": "cuisine_subtype",
    "Curry": "cuisine_subtype",
    "Indian": "cuisine_category",
    "Middle Eastern": "cuisine_category",
}

# favorites and search_terms come from chat only.
TOGGLE_KEYS = (
    "cuisine_subtype",
    "cuisine_category",
    "price_level",
    "tag",
    "keyword",
    "halal_status",
)


class FilterControls:
    """
    Filter chips and the cuisine menu over a ``PlaceBrowser``.

    The controls read and write the browser's active filter, so a filter set
    by chat shows up as active chips and a chip refines it. Choosing the
    value a slot already holds switches that slot off.
    """

    def __init__(self, browser: PlaceBrowser) -> None:
        self.browser = browser

    @property
    def active(self) -> PlaceFilter:
        return self.browser.active_filter

    @property
    def has_active(self) -> bool:
        return not self.active.is_empty()

    def is_active(self, key: str, value: str | None = None) -> bool:
        current = getattr(self.active, key)
        if value is not None:
            return current == value
        return bool(current)

    @property
    def cuisine_label(self) -> str:
        return self.active.cuisine_subtype or self.active.cuisine_category or "Cuisine"

    async def _apply(self, values: dict[str, Any]) -> PlaceFilter:
        place_filter = PlaceFilter.model_validate(values)
        await self.browser.apply_filter(place_filter)
        return place_filter

    async def toggle(self, key: str, value: str) -> PlaceFilter:
        if key not in TOGGLE_KEYS:
            raise ValueError(f"{key!r} is not a toggleable filter")
        values = self.active.model_dump(exclude_none=True)
        if values.get(key) == value:
            values.pop(key)
        else:
            values[key] = value
        return await self._apply(values)

    async def toggle_certified(self) -> PlaceFilter:
        return await self.toggle("halal_status", CERTIFIED)

    async def toggle_no_alcohol(self) -> PlaceFilter:
        return await self.toggle("tag", NO_ALCOHOL_TAG)

    async def choose_cuisine(self, value: str) -> PlaceFilter:
        """Pick one menu entry; it replaces any other cuisine choice."""
        key = CUISINE_OPTIONS.get(value)
        if key is None:
            raise ValueError(f"unknown cuisine option {value!r}")
        values = self.active.model_dump(exclude_none=True)
        if values.get(key) == value:
            values.pop(key)
        else:
            values.pop("cuisine_subtype", None)
            values.pop("cuisine_category", None)
            values[key] = value
        return await self._apply(values)

    async def clear(self) -> None:
        await self.browser.apply_filter(PlaceFilter())
