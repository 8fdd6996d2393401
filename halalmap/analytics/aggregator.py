from __future__ import annotations

from collections import Counter
from typing import Any

from ..places.models import FILTER_TEXT_FIELDS


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    chats = [e for e in events if e["type"] == "chat"]
    suggestions = [e for e in events if e["type"] == "suggestion"]
    total = len(searches)

    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    cuisine_counter: Counter[str] = Counter()
    keyword_counter: Counter[str] = Counter()
    field_counts: Counter[str] = Counter()
    for s in searches:
        flt = s.get("filter") or {}
        for key in flt:
            field_counts[key] += 1
        for key in ("cuisine_subtype", "cuisine_category"):
            if flt.get(key):
                cuisine_counter[flt[key].title()] += 1
        if flt.get("keyword"):
            keyword_counter[flt["keyword"].title()] += 1

    filter_usage = {
        key: _rate(field_counts[key], total)
        for key in (*FILTER_TEXT_FIELDS, "search_terms")
    }

    outcomes: Counter[str] = Counter(c.get("outcome", "unknown") for c in chats)
    inferred = sum(1 for c in chats if c.get("inferred"))

    cache_hits = sum(1 for s in searches if s.get("cache_hit"))

    return {
        "total_searches": total,
        "total_chats": len(chats),
        "total_suggestions": len(suggestions),
        "avg_response_time_ms": avg_time,
        "top_cuisines": [{"name": n, "count": c} for n, c in cuisine_counter.most_common(10)],
        "top_keywords": [{"name": n, "count": c} for n, c in keyword_counter.most_common(10)],
        "filter_usage": filter_usage,
        "chat_outcomes": dict(outcomes),
        "fallback_rate": _rate(inferred, len(chats)),
        "cache_stats": {
            "hits": cache_hits,
            "misses": total - cache_hits,
            "hit_rate": _rate(cache_hits, total),
        },
    }
