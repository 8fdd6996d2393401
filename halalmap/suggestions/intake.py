from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..analytics.store import record_event
from .models import Suggestion, SuggestionRequest

logger = logging.getLogger(__name__)

FIELD_LIMITS: dict[str, int] = {
    "name": 200,
    "address": 500,
    "city": 100,
    "cuisine_type": 100,
    "halal_status": 100,
    "phone": 50,
    "website": 500,
    "notes": 1000,
    "submitter_email": 200,
}

REQUIRED_MESSAGE = "Restaurant name and address are required."

_suggestions: list[Suggestion] = []


class InvalidSuggestion(ValueError):
    pass


def _clip(value: str | None, limit: int) -> str | None:
    if not value:
        return None
    return value.strip()[:limit] or None


def submit_suggestion(request: SuggestionRequest) -> Suggestion:
    """Validate, truncate and record a suggestion as pending.

    Raises ``InvalidSuggestion`` when name or address is missing or blank.
    """
    fields = {key: _clip(getattr(request, key), limit) for key, limit in FIELD_LIMITS.items()}
    if not fields["name"] or not fields["address"]:
        raise InvalidSuggestion(REQUIRED_MESSAGE)

    suggestion = Suggestion(
        **fields,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    _suggestions.append(suggestion)
    logger.info("New place suggestion: %s", suggestion.model_dump_json())
    record_event("suggestion", {"name": suggestion.name, "city": suggestion.city})
    return suggestion


def get_suggestions() -> list[Suggestion]:
    return list(_suggestions)


def clear_suggestions() -> None:
    _suggestions.clear()
