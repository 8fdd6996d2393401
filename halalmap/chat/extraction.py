from __future__ import annotations

import json
from typing import Any

_EXPECTED_KEYS = ("filter", "message")


def _is_reply_object(value: Any) -> bool:
    return isinstance(value, dict) and any(key in value for key in _EXPECTED_KEYS)


def _balanced_blocks(text: str) -> list[tuple[int, int]]:
    """Return (start, end) spans of every balanced ``{...}`` block.

    Braces inside JSON strings are ignored. Quotes are only tracked inside a
    block so apostrophes in leading prose cannot desynchronise the scan.
    """
    blocks: list[tuple[int, int]] = []
    stack: list[int] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and stack:
            in_string = True
        elif ch == "{":
            stack.append(i)
        elif ch == "}" and stack:
            start = stack.pop()
            blocks.append((start, i + 1))
    return blocks


def extract_model_json(text: str) -> dict[str, Any] | None:
    """
    Recover the ``{"filter": ..., "message": ...}`` object from model output.

    Tries the whole text first. Reasoning models often write prose before
    the answer, so the fallback is the last balanced block carrying a
    ``filter`` or ``message`` key. Returns ``None`` when nothing usable is
    found.
    """
    text = (text or "").strip()
    if not text:
        return None

    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if _is_reply_object(parsed):
        return parsed

    # An enclosing block always ends after its children, so it is tried first.
    for start, end in sorted(_balanced_blocks(text), key=lambda span: span[1], reverse=True):
        try:
            candidate = json.loads(text[start:end])
        except ValueError:
            continue
        if _is_reply_object(candidate):
            return candidate
    return None
