from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

MAX_SEARCH_LENGTH = 100

# Characters with meaning in ILIKE patterns or quoted query values.
_PATTERN_CHARS_RE = re.compile(r"[%_'\"\\]")


def sanitize_input(value: Any) -> str | None:
    """Strip pattern-match characters, trim and truncate a filter value.

    Returns ``None`` for missing or non-string input, or when nothing is
    left after cleaning. This keeps ILIKE clauses well-formed; it is not an
    escaping mechanism.
    """
    if not value or not isinstance(value, str):
        return None
    cleaned = _PATTERN_CHARS_RE.sub("", value).strip()[:MAX_SEARCH_LENGTH].strip()
    return cleaned or None


def has_non_empty_values(obj: Mapping[str, Any]) -> bool:
    for value in obj.values():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set)):
            if value:
                return True
        elif str(value).strip():
            return True
    return False
