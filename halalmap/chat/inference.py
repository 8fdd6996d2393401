from __future__ import annotations

import re
from collections.abc import Iterable

from ..places.models import PlaceFilter

# ---------------------------------------------------------------------------
# Keyword tables
# ---------------------------------------------------------------------------

_CUISINE_SUBTYPES: dict[str, str] = {
    "ramen": "Ramen",
    "sushi": "Sushi",
    "yakiniku": "Yakiniku",
    "bbq": "Yakiniku",
    "barbecue": "Yakiniku",
    "curry": "Curry",
    "kebab": "Kebab",
    "shawarma": "Kebab",
    "biryani": "Biryani",
    "burger": "Burger",
    "udon": "Udon",
    "soba": "Soba",
    "tempura": "Tempura",
    "sukiyaki": "Sukiyaki",
    "karahi": "Karahi",
    "nasi lemak": "Nasi Lemak",
    "pizza": "Pizza",
    "teishoku": "Teishoku",
}

_CUISINE_CATEGORIES: dict[str, str] = {
    "japanese": "Japanese",
    "indian": "Indian",
    "pakistani": "Pakistani",
    "turkish": "Middle Eastern",
    "arabic": "Middle Eastern",
    "middle eastern": "Middle Eastern",
    "malaysian": "Malaysian",
    "indonesian": "Indonesian",
    "thai": "Thai",
    "chinese": "Chinese",
    "korean": "Korean",
    "american": "American",
}

KNOWN_AREAS: tuple[str, ...] = (
    "Shinjuku",
    "Shibuya",
    "Harajuku",
    "Asakusa",
    "Ueno",
    "Akihabara",
    "Ginza",
    "Ikebukuro",
    "Roppongi",
    "Shinagawa",
    "Ebisu",
    "Odaiba",
    "Jimbocho",
    "Tokyo",
    "Osaka",
    "Namba",
    "Kyoto",
)

_PRICE_KEYWORDS: dict[str, str] = {
    "cheap": "budget",
    "budget": "budget",
    "affordable": "budget",
    "inexpensive": "budget",
    "moderate": "moderate",
    "mid-range": "moderate",
    "mid range": "moderate",
    "expensive": "expensive",
    "fine dining": "expensive",
    "upscale": "expensive",
    "luxury": "expensive",
    "splurge": "expensive",
}

_TAG_KEYWORDS: dict[str, str] = {
    "spicy": "spicy",
    "vegetarian": "vegetarian",
    "family": "family-friendly",
    "kids": "family-friendly",
    "prayer": "prayer-room",
    "musholla": "prayer-room",
    "takeaway": "takeaway",
    "takeout": "takeaway",
    "wagyu": "wagyu",
    "seafood": "seafood",
    "no alcohol": "no-alcohol",
    "alcohol-free": "no-alcohol",
}

_FAVORITES_RE = re.compile(r"\b(?:my\s+)?favou?rites?\b", re.IGNORECASE)

_PRICE_WORDS = {"budget": "budget-friendly", "moderate": "mid-range", "expensive": "upscale"}


def _keyword_re(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword)}(?:s|es)?\b", re.IGNORECASE)


def _first_match(text: str, table: dict[str, str]) -> str | None:
    """Value of the keyword appearing earliest in ``text``; longer keywords win ties."""
    best: tuple[int, int, str] | None = None
    for keyword, value in table.items():
        match = _keyword_re(keyword).search(text)
        if match:
            rank = (match.start(), -len(keyword), value)
            if best is None or rank < best:
                best = rank
    return best[2] if best else None


def _match_name(text: str, names: Iterable[str]) -> str | None:
    lower = text.lower()
    # Longest first so "Naritaya Asakusa" beats a bare area name inside it.
    for name in sorted({n for n in names if n}, key=len, reverse=True):
        if name.lower() in lower:
            return name
    return None


# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------


def infer_filter(text: str, known_names: Iterable[str] = ()) -> PlaceFilter:
    """
    Build a filter from ``text`` by keyword matching alone.

    Used when the LLM is unavailable or its output cannot be recovered. A
    known place name takes the keyword slot ahead of an area name. The
    result depends only on the inputs.
    """
    if not text or not text.strip():
        return PlaceFilter()

    keyword = _match_name(text, known_names)
    if keyword is None:
        areas = {area.lower(): area for area in KNOWN_AREAS}
        keyword = _first_match(text, areas)

    return PlaceFilter(
        cuisine_subtype=_first_match(text, _CUISINE_SUBTYPES),
        cuisine_category=_first_match(text, _CUISINE_CATEGORIES),
        price_level=_first_match(text, _PRICE_KEYWORDS),
        tag=_first_match(text, _TAG_KEYWORDS),
        keyword=keyword,
        favorites=True if _FAVORITES_RE.search(text) else None,
    )


def describe_filter(place_filter: PlaceFilter) -> str:
    """Short human phrase for a filter, e.g. ``budget-friendly ramen places in Shinjuku``."""
    if place_filter.favorites:
        return "your favorite places"

    words: list[str] = []
    if place_filter.price_level:
        words.append(_PRICE_WORDS.get(place_filter.price_level, place_filter.price_level))
    if place_filter.tag:
        words.append(place_filter.tag)
    cuisine = place_filter.cuisine_subtype or place_filter.cuisine_category
    if cuisine:
        words.append(cuisine.lower())
    words.append("places")
    if place_filter.keyword:
        words.append(f"in {place_filter.keyword}")
    return " ".join(words)
