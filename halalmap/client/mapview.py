from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..places.models import Place, halal_status_style
from .browser import PlaceBrowser
from .storage import MapPosition, MapPositionStore

DEFAULT_CENTER = (35.6895, 139.6917)  # Tokyo
DEFAULT_ZOOM = 11
MIN_ZOOM = 5
MAX_ZOOM = 18
SELECTED_ZOOM = 15
CLUSTER_ZOOM_THRESHOLD = 12
CLUSTER_RADIUS_PX = 60
_TILE_PX = 256


class MarkerState(str, Enum):
    unselected = "unselected"
    hovered = "hovered"
    selected = "selected"


@dataclass
class Viewport:
    lat: float
    lng: float
    zoom: int


@dataclass(frozen=True)
class Marker:
    place_id: str
    lat: float
    lng: float
    color: str
    border_color: str
    state: MarkerState


@dataclass(frozen=True)
class Cluster:
    lat: float
    lng: float
    place_ids: tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.place_ids)


@dataclass(frozen=True)
class MapLayer:
    markers: list[Marker]
    clusters: list[Cluster]


def _clamp_zoom(zoom: int) -> int:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def fit_bounds(places: list[Place]) -> Viewport | None:
    """Viewport covering every place with coordinates, or None if there are none."""
    points = [(p.lat, p.lng) for p in places if p.has_coordinates]
    if not points:
        return None
    lats = [lat for lat, _ in points]
    lngs = [lng for _, lng in points]
    span = max(max(lats) - min(lats), max(lngs) - min(lngs))
    if span == 0:
        zoom = SELECTED_ZOOM
    else:
        zoom = _clamp_zoom(math.floor(math.log2(360.0 / span)) - 1)
    return Viewport(
        lat=(max(lats) + min(lats)) / 2,
        lng=(max(lngs) + min(lngs)) / 2,
        zoom=zoom,
    )


def cluster_places(places: list[Place], zoom: int) -> list[Cluster]:
    """Group places into square grid cells sized to ``CLUSTER_RADIUS_PX`` at ``zoom``."""
    cell = 360.0 / (2**zoom) * CLUSTER_RADIUS_PX / _TILE_PX
    cells: dict[tuple[int, int], list[Place]] = {}
    for p in places:
        if not p.has_coordinates:
            continue
        key = (math.floor(p.lat / cell), math.floor(p.lng / cell))
        cells.setdefault(key, []).append(p)
    return [
        Cluster(
            lat=sum(p.lat for p in members) / len(members),
            lng=sum(p.lng for p in members) / len(members),
            place_ids=tuple(p.id for p in members),
        )
        for members in cells.values()
    ]


class MapView:
    """
    Marker, popup and viewport state for the places in a ``PlaceBrowser``.

    The browser owns the selected place; the map owns hover and viewport.
    Selecting pans to the place, a new result set with nothing selected
    refits the viewport, and clearing a selection leaves the viewport alone.
    """

    def __init__(
        self,
        browser: PlaceBrowser,
        positions: MapPositionStore | None = None,
        low_zoom_filter: Callable[[Place], bool] | None = None,
    ) -> None:
        self.browser = browser
        self.positions = positions
        self.low_zoom_filter = low_zoom_filter
        self.hovered_id: str | None = None

        saved = positions.get() if positions else None
        if saved:
            self.viewport = Viewport(saved.lat, saved.lng, _clamp_zoom(saved.zoom))
        else:
            self.viewport = Viewport(DEFAULT_CENTER[0], DEFAULT_CENTER[1], DEFAULT_ZOOM)

        self._seen_selection: str | None = None
        self._seen_places: tuple[str, ...] = tuple(p.id for p in browser.places)
        browser.subscribe(self._on_browser_change)

    # ── Viewport ─────────────────────────────────────────────────────────

    def move_to(self, lat: float, lng: float, zoom: int | None = None) -> None:
        self.viewport = Viewport(lat, lng, _clamp_zoom(self.viewport.zoom if zoom is None else zoom))
        if self.positions:
            self.positions.save(MapPosition(self.viewport.lat, self.viewport.lng, self.viewport.zoom))

    def set_zoom(self, zoom: int) -> None:
        self.move_to(self.viewport.lat, self.viewport.lng, zoom)

    def _on_browser_change(self, browser: PlaceBrowser) -> None:
        selected = browser.selected
        place_ids = tuple(p.id for p in browser.places)

        if selected is not None and selected.id != self._seen_selection:
            if selected.has_coordinates:
                self.move_to(selected.lat, selected.lng, SELECTED_ZOOM)
        elif selected is None and place_ids != self._seen_places:
            bounds = fit_bounds(browser.places)
            if bounds is not None:
                self.move_to(bounds.lat, bounds.lng, bounds.zoom)

        if self.hovered_id is not None and self.hovered_id not in place_ids:
            self.hovered_id = None
        self._seen_selection = selected.id if selected else None
        self._seen_places = place_ids

    # ── Marker interaction ───────────────────────────────────────────────

    def _find(self, place_id: str) -> Place | None:
        return next((p for p in self.browser.places if p.id == place_id), None)

    def hover(self, place_id: str) -> None:
        if self._find(place_id) is not None:
            self.hovered_id = place_id

    def unhover(self) -> None:
        self.hovered_id = None

    def click(self, place_id: str) -> None:
        place = self._find(place_id)
        if place is not None:
            self.browser.select(place)

    def marker_state(self, place_id: str) -> MarkerState:
        selected = self.browser.selected
        if selected is not None and selected.id == place_id:
            return MarkerState.selected
        if self.hovered_id == place_id:
            return MarkerState.hovered
        return MarkerState.unselected

    @property
    def active_place(self) -> Place | None:
        """Place whose popup is open; hover wins over selection."""
        if self.hovered_id is not None:
            hovered = self._find(self.hovered_id)
            if hovered is not None:
                return hovered
        return self.browser.selected

    def close_popup(self) -> None:
        active = self.active_place
        self.hovered_id = None
        selected = self.browser.selected
        if active is not None and selected is not None and active.id == selected.id:
            self.browser.select(None)

    # ── Rendering ────────────────────────────────────────────────────────

    def _marker(self, place: Place) -> Marker:
        style = halal_status_style(place.halal_status)
        return Marker(
            place_id=place.id,
            lat=place.lat,
            lng=place.lng,
            color=style.color,
            border_color=style.border_color,
            state=self.marker_state(place.id),
        )

    def layer(self) -> MapLayer:
        drawable = [p for p in self.browser.places if p.has_coordinates]
        if self.viewport.zoom >= CLUSTER_ZOOM_THRESHOLD:
            return MapLayer(markers=[self._marker(p) for p in drawable], clusters=[])

        if self.low_zoom_filter is not None:
            drawable = [p for p in drawable if self.low_zoom_filter(p)]
        by_id = {p.id: p for p in drawable}
        markers: list[Marker] = []
        clusters: list[Cluster] = []
        for group in cluster_places(drawable, self.viewport.zoom):
            if group.count == 1:
                markers.append(self._marker(by_id[group.place_ids[0]]))
            else:
                clusters.append(group)
        return MapLayer(markers=markers, clusters=clusters)


def certified_only(place: Place) -> bool:
    return halal_status_style(place.halal_status).value == "Certified"
