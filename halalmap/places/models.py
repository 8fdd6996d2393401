from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .sanitize import has_non_empty_values

FILTER_TEXT_FIELDS = (
    "cuisine_subtype",
    "cuisine_category",
    "price_level",
    "tag",
    "keyword",
    "halal_status",
)


class Place(BaseModel):
    id: str
    place_id: str | None = None
    name: str
    address: str | None = None
    city: str | None = None
    country: str | None = None
    cuisine_category: str | None = None
    cuisine_subtype: str | None = None
    price_level: str | None = None
    halal_status: str | None = None
    tags: list[str] = Field(default_factory=list)
    opening_hours: Any = None
    lat: float | None = None
    lng: float | None = None
    phone: str | None = None
    website_url: str | None = None
    google_maps_url: str | None = None
    # Attached from Google ratings, never stored.
    rating: float | None = None
    rating_count: int | None = None

    @field_validator("id", "place_id", mode="before")
    @classmethod
    def _id_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            return [t.strip() for t in value.split(",") if t.strip()]
        return [str(t) for t in value]

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def cuisine_label(self) -> str:
        return self.cuisine_subtype or self.cuisine_category or "Halal"


class PlaceFilter(BaseModel):
    """Structured search constraints produced by chat and consumed by search.

    Every text slot is either ``None`` or a non-empty trimmed string and
    ``favorites`` is strictly a bool or ``None``; anything else the LLM
    emits is dropped to ``None`` rather than rejected.
    """

    model_config = ConfigDict(extra="ignore")

    cuisine_subtype: str | None = None
    cuisine_category: str | None = None
    price_level: str | None = None
    tag: str | None = None
    keyword: str | None = None
    halal_status: str | None = None
    favorites: bool | None = None
    search_terms: list[str] | None = None

    @field_validator(*FILTER_TEXT_FIELDS, mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value or None

    @field_validator("favorites", mode="before")
    @classmethod
    def _strict_bool(cls, value: Any) -> bool | None:
        return value if isinstance(value, bool) else None

    @field_validator("search_terms", mode="before")
    @classmethod
    def _clean_terms(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        terms = [t.strip() for t in value if isinstance(t, str) and t.strip()]
        return terms or None

    def is_empty(self) -> bool:
        data = self.model_dump()
        # favorites=False constrains nothing.
        if data["favorites"] is False:
            data["favorites"] = None
        return not has_non_empty_values(data)

    def populated_fields(self) -> set[str]:
        return set(self.model_dump(exclude_none=True))


class SearchRequest(BaseModel):
    filter: PlaceFilter = Field(default_factory=PlaceFilter)


class SearchResponse(BaseModel):
    places: list[Place]


# ── Halal status display ────────────────────────────────────────────────


@dataclass(frozen=True)
class HalalStatusStyle:
    value: str
    label: str
    color: str
    border_color: str
    description: str


HALAL_STATUS: dict[str, HalalStatusStyle] = {
    "certified": HalalStatusStyle(
        value="Certified",
        label="Halal Certified",
        color="#10B981",
        border_color="#059669",
        description="Officially halal certified restaurant",
    ),
    "muslim_friendly": HalalStatusStyle(
        value="Muslim Friendly",
        label="Muslim Friendly",
        color="#3B82F6",
        border_color="#2563EB",
        description="Accommodates Muslim dietary needs",
    ),
    "unverified": HalalStatusStyle(
        value="Unverified",
        label="Unverified",
        color="#9CA3AF",
        border_color="#6B7280",
        description="Halal status not yet verified",
    ),
}


def halal_status_style(status: str | None) -> HalalStatusStyle:
    if not status:
        return HALAL_STATUS["unverified"]
    lower = status.lower()
    if "certified" in lower:
        return HALAL_STATUS["certified"]
    if "muslim" in lower or "friendly" in lower:
        return HALAL_STATUS["muslim_friendly"]
    return HALAL_STATUS["unverified"]


class RatingsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    place_ids: list[str] = Field(default_factory=list, alias="placeIds")
