from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import LLMError, LLMRateLimited, LLMTimeout, complete
from ..places.models import PlaceFilter
from .extraction import extract_model_json
from .inference import describe_filter, infer_filter
from .models import (
    ChatContext,
    ChatReply,
    ChatTurn,
    Malformed,
    RateLimited,
    Resolved,
    ResolverOutcome,
    Unreachable,
)

logger = logging.getLogger(__name__)

MAX_HISTORY_TURNS = 10
MAX_CONTEXT_PLACES = 15
DEFAULT_AREA = "Tokyo"

NO_RESPONSE_MESSAGE = "I didn't get a response. Please try again."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
FAILURE_MESSAGE = "Something went wrong. Please try again."
UPDATED_MESSAGE = "Okay, I've updated the map."

_BROWSE_RE = re.compile(r"\b(show|find|recommend|search|list|where)\b", re.IGNORECASE)

# ---------------------------------------------------------------------------
# LLM Prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a friendly, knowledgeable assistant helping Muslims find halal food in Japan.

Your job is to:
1. Help users search for halal restaurants by setting filters
2. Answer follow-up questions about the places conversationally
3. Recommend places from the current search results when asked

A query is a NEW SEARCH if it mentions a cuisine (ramen, sushi, yakiniku, curry), \
a location (Shinjuku, Shibuya, Asakusa, Osaka), a price preference (cheap, expensive) \
or a feature (spicy, vegetarian, family-friendly). For new searches ALWAYS set the \
matching filter fields so the map updates.

A query is a FOLLOW-UP if it only refers to the results already shown \
("which is best?", "tell me more about the first one"). For follow-ups keep the \
filter empty, answer in the message using the CURRENT SEARCH RESULTS, and put the \
exact name of any place you recommend in recommended_place. Never invent names.

DATABASE FIELDS:
- cuisine_subtype: specific dish type (Ramen, Yakiniku, Sushi, Curry, Kebab, ...)
- cuisine_category: broad category (Japanese, Indian, Middle Eastern, ...)
- keyword: matched against name, address and city; use it for areas and place names
- price_level: "budget", "moderate" or "expensive"
- tag: one lowercase feature (spicy, vegetarian, family-friendly, prayer-room, wagyu, no-alcohol)
- halal_status: "Certified" or "Muslim Friendly"
- favorites: true only when the user asks for their saved favorites

Return ONLY valid JSON in this exact format:
{
  "filter": {
    "cuisine_subtype": string | null,
    "cuisine_category": string | null,
    "price_level": string | null,
    "tag": string | null,
    "keyword": string | null,
    "halal_status": string | null,
    "favorites": boolean | null
  },
  "message": string,
  "recommended_place": string | null
}

EXAMPLES:
- "Best ramen in Shinjuku" -> filter {"cuisine_subtype": "Ramen", "keyword": "Shinjuku"}
- "Halal yakiniku near Shibuya" -> filter {"cuisine_subtype": "Yakiniku", "keyword": "Shibuya"}
- "Any cheap options?" -> filter {"price_level": "budget"}
- "Spicy food in Tokyo" -> filter {"tag": "spicy", "keyword": "Tokyo"}
- "Which is the best rated?" -> filter {}, recommended_place "<exact name>"
"""


def _context_block(context: ChatContext | None) -> str:
    if context is None:
        return ""
    lines: list[str] = []
    if context.last_filter and not context.last_filter.is_empty():
        lines.append(
            "LAST FILTER: " + json.dumps(context.last_filter.model_dump(exclude_none=True))
        )
    places = context.current_places[:MAX_CONTEXT_PLACES]
    if places:
        lines.append(f"CURRENT SEARCH RESULTS ({len(context.current_places)} places):")
        for i, p in enumerate(places, start=1):
            parts = [p.name, p.cuisine or "Halal", p.city or "?", p.price or "?"]
            if p.rating is not None:
                count = f" ({p.rating_count} reviews)" if p.rating_count else ""
                parts.append(f"Rating: {p.rating}/5{count}")
            lines.append(f"{i}. " + " | ".join(parts))
    return ("\n\n" + "\n".join(lines)) if lines else ""


def build_messages(
    turns: list[ChatTurn],
    context: ChatContext | None = None,
) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT + _context_block(context)}]
    for turn in turns[-MAX_HISTORY_TURNS:]:
        messages.append({"role": turn.role, "content": turn.content})
    return messages


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_intent(
    turns: list[ChatTurn],
    context: ChatContext | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> ResolverOutcome:
    """Ask the LLM for a filter and classify what came back."""
    if not config.available:
        return Unreachable(error="LLM disabled")

    try:
        content = complete(build_messages(turns, context), config=config)
    except LLMRateLimited as exc:
        return RateLimited(retry_after=exc.retry_after)
    except LLMTimeout as exc:
        return Unreachable(error=str(exc), timed_out=True)
    except LLMError as exc:
        return Unreachable(error=str(exc))

    parsed = extract_model_json(content)
    if parsed is None:
        logger.warning("Unparseable LLM response, falling back to keywords: %.200s", content)
        return Malformed(raw_text=content)

    raw_filter = parsed.get("filter")
    message = parsed.get("message")
    recommended = parsed.get("recommended_place")
    return Resolved(
        filter=PlaceFilter.model_validate(raw_filter if isinstance(raw_filter, dict) else {}),
        message=message.strip() if isinstance(message, str) else "",
        recommended_place=recommended.strip() if isinstance(recommended, str) and recommended.strip() else None,
    )


def _latest_user_text(turns: list[ChatTurn]) -> str:
    for turn in reversed(turns):
        if turn.role == "user":
            return turn.content
    return ""


def _apply_browse_guard(
    place_filter: PlaceFilter,
    user_text: str,
    recommended_place: str | None,
    context: ChatContext | None,
) -> PlaceFilter:
    # An empty filter on a browse request would reset the map to everything.
    if not place_filter.is_empty() or recommended_place:
        return place_filter
    if context is not None and context.current_places:
        return place_filter
    if not _BROWSE_RE.search(user_text):
        return place_filter
    return place_filter.model_copy(update={"keyword": DEFAULT_AREA})


def _fallback_message(outcome: Malformed | Unreachable, place_filter: PlaceFilter) -> str:
    if not place_filter.is_empty():
        return f"Here are halal {describe_filter(place_filter)} I could find."
    if isinstance(outcome, Malformed):
        return NO_RESPONSE_MESSAGE
    return TIMEOUT_MESSAGE if outcome.timed_out else FAILURE_MESSAGE


def build_reply(
    outcome: Resolved | Malformed | Unreachable,
    turns: list[ChatTurn],
    context: ChatContext | None = None,
) -> ChatReply:
    """Fold a resolver outcome into the filter and message the UI shows."""
    user_text = _latest_user_text(turns)

    if isinstance(outcome, Resolved):
        place_filter = _apply_browse_guard(outcome.filter, user_text, outcome.recommended_place, context)
        return ChatReply(
            filter=place_filter,
            message=outcome.message or UPDATED_MESSAGE,
            recommended_place=outcome.recommended_place,
        )

    known_names = [p.name for p in context.current_places] if context else []
    place_filter = infer_filter(user_text, known_names)
    place_filter = _apply_browse_guard(place_filter, user_text, None, context)
    return ChatReply(
        filter=place_filter,
        message=_fallback_message(outcome, place_filter),
        inferred=True,
    )


def summarize_outcome(outcome: ResolverOutcome, reply: ChatReply | None) -> dict[str, Any]:
    return {
        "outcome": outcome.kind.value,
        "inferred": bool(reply and reply.inferred),
        "filter": reply.filter.model_dump(exclude_none=True) if reply else {},
    }
