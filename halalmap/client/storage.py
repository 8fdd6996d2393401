from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

FAVORITES_KEY = "halal_favorites"
GUEST_QUERIES_USED_KEY = "halalicious_guest_queries_used"
LAST_MAP_POSITION_KEY = "halalicious_last_map_position"

MAX_FREE_QUERIES = 3


class KeyValueStorage(Protocol):
    """String key/value storage with localStorage semantics."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """Items kept in one JSON object on disk, rewritten atomically on change."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Unreadable state file %s, starting empty", self.path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(items, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)


def get_json(storage: KeyValueStorage, key: str, fallback: Any) -> Any:
    raw = storage.get_item(key)
    if raw is None:
        return fallback
    try:
        return json.loads(raw)
    except ValueError:
        return fallback


def set_json(storage: KeyValueStorage, key: str, value: Any) -> None:
    try:
        storage.set_item(key, json.dumps(value))
    except OSError:
        logger.error("Failed to save %s", key, exc_info=True)


# ── Favorites ────────────────────────────────────────────────────────────


class FavoritesStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def all(self) -> list[str]:
        value = get_json(self._storage, FAVORITES_KEY, [])
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]

    def is_favorite(self, place_id: str) -> bool:
        return place_id in self.all()

    def add(self, place_id: str) -> None:
        current = self.all()
        if place_id not in current:
            set_json(self._storage, FAVORITES_KEY, [*current, place_id])

    def remove(self, place_id: str) -> None:
        set_json(self._storage, FAVORITES_KEY, [pid for pid in self.all() if pid != place_id])

    def toggle(self, place_id: str) -> bool:
        """Flip a place's favorite status and return the new one."""
        if self.is_favorite(place_id):
            self.remove(place_id)
            return False
        self.add(place_id)
        return True


# ── Guest quota ──────────────────────────────────────────────────────────


class GuestQuota:
    """Free chat questions allowed before sign-in is required."""

    def __init__(self, storage: KeyValueStorage, limit: int = MAX_FREE_QUERIES) -> None:
        self._storage = storage
        self.limit = limit

    def used(self) -> int:
        value = get_json(self._storage, GUEST_QUERIES_USED_KEY, 0)
        return value if isinstance(value, int) and value >= 0 else 0

    def has_remaining(self) -> bool:
        return self.used() < self.limit

    def remaining(self) -> int:
        return max(0, self.limit - self.used())

    def increment_used(self) -> None:
        set_json(self._storage, GUEST_QUERIES_USED_KEY, self.used() + 1)

    def reset(self) -> None:
        set_json(self._storage, GUEST_QUERIES_USED_KEY, 0)


# ── Map position ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MapPosition:
    lat: float
    lng: float
    zoom: int


class MapPositionStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def save(self, position: MapPosition) -> None:
        set_json(self._storage, LAST_MAP_POSITION_KEY, {
            "center": {"lat": position.lat, "lng": position.lng},
            "zoom": position.zoom,
        })

    def get(self) -> MapPosition | None:
        value = get_json(self._storage, LAST_MAP_POSITION_KEY, None)
        try:
            return MapPosition(
                lat=float(value["center"]["lat"]),
                lng=float(value["center"]["lng"]),
                zoom=int(value["zoom"]),
            )
        except (TypeError, KeyError, ValueError):
            return None

    def clear(self) -> None:
        self._storage.remove_item(LAST_MAP_POSITION_KEY)
