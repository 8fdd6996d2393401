from __future__ import annotations

from unittest.mock import MagicMock, patch

import groq
import httpx
import pytest

from halalmap.llm.config import LLMConfig
from halalmap.llm.groq_client import (
    DEFAULT_RETRY_AFTER,
    LLMError,
    LLMRateLimited,
    LLMTimeout,
    complete,
)

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
MESSAGES = [{"role": "user", "content": "Best ramen in Shinjuku"}]

_REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _rate_limit_error(headers: dict[str, str] | None = None) -> groq.RateLimitError:
    response = httpx.Response(429, headers=headers or {}, request=_REQUEST)
    return groq.RateLimitError("Rate limit reached", response=response, body=None)


@patch("halalmap.llm.groq_client.Groq")
def test_complete_returns_content(mock_groq_cls):
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value = _mock_groq_response('{"filter": {}}')
    mock_groq_cls.return_value = mock_client

    assert complete(MESSAGES, config=ENABLED_CONFIG) == '{"filter": {}}'

    mock_groq_cls.assert_called_once_with(api_key="test-key", timeout=20.0, max_retries=0)
    kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"] == MESSAGES
    assert kwargs["response_format"] == {"type": "json_object"}


@patch("halalmap.llm.groq_client.Groq")
def test_json_mode_off(mock_groq_cls):
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value = _mock_groq_response("ok")
    mock_groq_cls.return_value = mock_client

    complete(MESSAGES, config=LLMConfig(api_key="k", json_mode=False))

    assert "response_format" not in mock_client.chat.completions.create.call_args.kwargs


@patch("halalmap.llm.groq_client.Groq")
def test_none_content_is_empty_string(mock_groq_cls):
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value = _mock_groq_response(None)
    mock_groq_cls.return_value = mock_client

    assert complete(MESSAGES, config=ENABLED_CONFIG) == ""


@patch("halalmap.llm.groq_client.Groq")
def test_disabled_never_calls_groq(mock_groq_cls):
    with pytest.raises(LLMError):
        complete(MESSAGES, config=DISABLED_CONFIG)
    mock_groq_cls.assert_not_called()


@patch("halalmap.llm.groq_client.Groq")
def test_rate_limit_uses_retry_after_header(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = _rate_limit_error({"retry-after": "7"})

    with pytest.raises(LLMRateLimited) as excinfo:
        complete(MESSAGES, config=ENABLED_CONFIG)
    assert excinfo.value.retry_after == 7


@patch("halalmap.llm.groq_client.Groq")
def test_rate_limit_without_header_uses_default(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = _rate_limit_error()

    with pytest.raises(LLMRateLimited) as excinfo:
        complete(MESSAGES, config=ENABLED_CONFIG)
    assert excinfo.value.retry_after == DEFAULT_RETRY_AFTER


@patch("halalmap.llm.groq_client.Groq")
def test_timeout(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = groq.APITimeoutError(request=_REQUEST)

    with pytest.raises(LLMTimeout):
        complete(MESSAGES, config=ENABLED_CONFIG)


@patch("halalmap.llm.groq_client.Groq")
def test_connection_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = groq.APIConnectionError(request=_REQUEST)

    with pytest.raises(LLMError) as excinfo:
        complete(MESSAGES, config=ENABLED_CONFIG)
    assert not isinstance(excinfo.value, (LLMTimeout, LLMRateLimited))
