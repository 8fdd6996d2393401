from __future__ import annotations

import logging

import groq
from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 10


class LLMError(Exception):
    """The completion service could not produce a response."""


class LLMTimeout(LLMError):
    pass


class LLMRateLimited(LLMError):
    def __init__(self, retry_after: int = DEFAULT_RETRY_AFTER) -> None:
        super().__init__(f"Rate limited, retry after {retry_after}s")
        self.retry_after = retry_after


def _retry_after_seconds(exc: groq.RateLimitError) -> int:
    raw = exc.response.headers.get("retry-after") if exc.response is not None else None
    try:
        return max(1, int(float(raw))) if raw else DEFAULT_RETRY_AFTER
    except ValueError:
        return DEFAULT_RETRY_AFTER


def complete(
    messages: list[dict[str, str]],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> str:
    """
    Send one chat completion to Groq and return the message text.

    Raises ``LLMRateLimited`` on 429, ``LLMTimeout`` on timeout and
    ``LLMError`` for any other API or connection failure.
    """
    if not config.available:
        raise LLMError("LLM disabled or no API key configured")

    kwargs = {}
    if config.json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout, max_retries=config.max_retries)
        response = client.chat.completions.create(
            model=config.model,
            messages=messages,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            **kwargs,
        )
    except groq.RateLimitError as exc:
        retry_after = _retry_after_seconds(exc)
        logger.warning("Groq rate limited, retry after %ss", retry_after)
        raise LLMRateLimited(retry_after) from exc
    except groq.APITimeoutError as exc:
        logger.warning("Groq request timed out", exc_info=True)
        raise LLMTimeout(str(exc)) from exc
    except groq.APIError as exc:
        logger.warning("Groq request failed", exc_info=True)
        raise LLMError(str(exc)) from exc

    return response.choices[0].message.content or ""
