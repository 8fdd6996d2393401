from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from ..chat.models import MAX_MESSAGE_LENGTH, ChatContext, ChatMessage, ChatResponse
from ..places.models import Place, PlaceFilter
from .api import APIError, HalalMapClient, RateLimitedError
from .browser import PlaceBrowser
from .config import DEFAULT_CLIENT_CONFIG, ClientConfig
from .storage import GuestQuota

logger = logging.getLogger(__name__)

QUICK_QUESTIONS = (
    "Best ramen in Shinjuku",
    "Halal yakiniku near Shibuya",
    "Spicy food in Tokyo",
    "Cheap lunch places",
)

TIMEOUT_MESSAGE = "Request timed out. Please try again."
BUSY_MESSAGE = "The assistant is still busy. Please try again in a moment."
UPDATED_MESSAGE = "Okay, I've updated the map."

Sleep = Callable[[float], Awaitable[None]]


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ChatSession:
    """
    Chat panel state: message history, in-flight turn, last applied filter.

    Each turn gets a fresh ``CancellationToken``; starting another turn or
    resetting cancels it, and a cancelled turn never writes to the session
    or the browser. Rate limits are retried at most
    ``config.max_chat_attempts - 1`` times.
    """

    def __init__(
        self,
        api: HalalMapClient,
        browser: PlaceBrowser,
        config: ClientConfig = DEFAULT_CLIENT_CONFIG,
        quota: GuestQuota | None = None,
        authenticated: bool = False,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.api = api
        self.browser = browser
        self.config = config
        self.quota = quota
        self.authenticated = authenticated
        self._sleep = sleep

        self.messages: list[ChatMessage] = []
        self.loading = False
        self.retrying = False
        self.auth_required = False
        self.last_filter = PlaceFilter()
        self._token: CancellationToken | None = None

    @property
    def is_guest_limited(self) -> bool:
        return not self.authenticated and self.quota is not None

    def quick_questions(self) -> tuple[str, ...]:
        return QUICK_QUESTIONS if not self.messages else ()

    def _notice(self, content: str) -> None:
        self.messages.append(ChatMessage(role="assistant", content=content[:MAX_MESSAGE_LENGTH], notice=True))

    def _say(self, token: CancellationToken, content: str) -> None:
        if not token.cancelled:
            self._notice(content)

    def _history(self) -> list[dict[str, str]]:
        turns = [m.as_turn() for m in self.messages if not m.notice]
        return turns[-self.config.max_history_turns:]

    def _cancel_turn(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
            self.browser.cancel_pending()

    async def submit(self, text: str) -> bool:
        """Send one user turn. Returns ``False`` when nothing was sent."""
        if not text or not text.strip():
            return False

        if self.is_guest_limited and not self.quota.has_remaining():
            self.auth_required = True
            self._notice(f"You've used your {self.quota.limit} free questions. Sign in to keep chatting.")
            return False

        self._cancel_turn()
        token = CancellationToken()
        self._token = token

        self.messages.append(ChatMessage(role="user", content=text.strip()[:MAX_MESSAGE_LENGTH]))
        self.loading = True
        try:
            await self._process(token)
        finally:
            if self._token is token:
                self._token = None
                self.loading = False
                self.retrying = False
        return True

    async def _process(self, token: CancellationToken) -> None:
        turns = self._history()
        context = ChatContext(last_filter=self.last_filter, current_places=self.browser.digest())

        for attempt in range(1, self.config.max_chat_attempts + 1):
            try:
                response = await asyncio.wait_for(
                    self.api.chat(turns, context),
                    timeout=self.config.request_timeout,
                )
            except RateLimitedError as exc:
                if token.cancelled:
                    return
                if attempt == self.config.max_chat_attempts:
                    self._say(token, BUSY_MESSAGE)
                    return
                wait = exc.retry_after or self.config.default_retry_after
                self._say(token, f"Server busy. Retrying in {wait}s...")
                self.retrying = True
                await self._sleep(wait)
                if token.cancelled:
                    return
                self.retrying = False
                continue
            except (asyncio.TimeoutError, httpx.TimeoutException):
                self._say(token, TIMEOUT_MESSAGE)
                return
            except (APIError, httpx.HTTPError) as exc:
                logger.warning("Chat request failed", exc_info=True)
                self._say(token, f"Error: {str(exc) or 'Something went wrong.'}")
                return

            await self._commit(token, response)
            return

    async def _commit(self, token: CancellationToken, response: ChatResponse) -> None:
        if token.cancelled:
            return

        place_filter = response.filter
        has_filter = not place_filter.is_empty()
        if has_filter:
            self.last_filter = place_filter

        self.messages.append(ChatMessage(
            role="assistant",
            content=(response.message or UPDATED_MESSAGE)[:MAX_MESSAGE_LENGTH],
            show_places=has_filter,
            recommended_place=response.recommended_place,
        ))
        if self.is_guest_limited:
            self.quota.increment_used()

        if has_filter:
            await self.browser.apply_filter(place_filter)

    def visible_places(self, message: ChatMessage) -> list[Place]:
        """Places listed under an assistant message; empty while results load."""
        if not message.show_places:
            return []
        return self.browser.visible_places()

    def open_recommended(self, message: ChatMessage) -> Place | None:
        if not message.recommended_place:
            return None
        return self.browser.select_by_name(message.recommended_place)

    async def reset(self) -> None:
        """Abort any in-flight turn, clear the chat and show every place again."""
        self._cancel_turn()
        self.messages = []
        self.last_filter = PlaceFilter()
        self.loading = False
        self.retrying = False
        await self.browser.apply_filter(PlaceFilter())
