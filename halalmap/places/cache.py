from __future__ import annotations

import hashlib
import json
import time
from collections import OrderedDict
from typing import Any

from .models import Place, PlaceFilter

_DEFAULT_TTL = 300  # 5 minutes
_DEFAULT_MAX_ENTRIES = 256


class SearchCache:
    """TTL cache of search results keyed by the normalised filter.

    Full caches evict the least recently used entry.
    """

    def __init__(self, ttl: float = _DEFAULT_TTL, max_entries: int = _DEFAULT_MAX_ENTRIES) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: OrderedDict[str, tuple[float, list[Place]]] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @staticmethod
    def key(place_filter: PlaceFilter) -> str:
        normalized = json.dumps(place_filter.model_dump(exclude_none=True), sort_keys=True)
        return hashlib.sha256(normalized.encode()).hexdigest()[:16]

    def get(self, place_filter: PlaceFilter) -> list[Place] | None:
        key = self.key(place_filter)
        entry = self._entries.get(key)
        if entry and time.time() - entry[0] < self.ttl:
            self._entries.move_to_end(key)
            self.hits += 1
            return entry[1]
        if entry:
            del self._entries[key]
        self.misses += 1
        return None

    def set(self, place_filter: PlaceFilter, places: list[Place]) -> None:
        key = self.key(place_filter)
        self._entries[key] = (time.time(), places)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self.evictions += 1

    def stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": round(self.hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0


search_cache = SearchCache()
