from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ..places.models import PlaceFilter

MAX_MESSAGE_LENGTH = 4000


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH)


class ChatMessage(ChatTurn):
    """A rendered chat entry; UI hints never go back to the server.

    ``notice`` marks client status lines (retry, error, quota) that are
    shown but left out of the conversation sent with the next turn.
    """

    show_places: bool = False
    recommended_place: str | None = None
    notice: bool = False

    def as_turn(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class PlaceDigest(BaseModel):
    """Compact view of a displayed place, used for follow-up questions."""

    name: str
    cuisine: str | None = None
    city: str | None = None
    price: str | None = None
    rating: float | None = None
    rating_count: int | None = None


class ChatContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_filter: PlaceFilter | None = Field(default=None, alias="lastFilter")
    current_places: list[PlaceDigest] = Field(default_factory=list, alias="currentPlaces")


class ChatRequest(BaseModel):
    messages: list[ChatTurn] = Field(..., min_length=1, max_length=100)
    context: ChatContext | None = None


class PlacePreview(BaseModel):
    name: str
    cuisine: str


class ChatResponse(BaseModel):
    filter: PlaceFilter
    message: str
    recommended_place: str | None = None
    places: list[PlacePreview] | None = None


# ── Resolver outcome ─────────────────────────────────────────────────────


class OutcomeKind(str, Enum):
    resolved = "resolved"
    malformed = "malformed"
    unreachable = "unreachable"
    rate_limited = "rate_limited"


@dataclass(frozen=True)
class Resolved:
    filter: PlaceFilter
    message: str
    recommended_place: str | None = None
    kind: OutcomeKind = OutcomeKind.resolved


@dataclass(frozen=True)
class Malformed:
    raw_text: str
    kind: OutcomeKind = OutcomeKind.malformed


@dataclass(frozen=True)
class Unreachable:
    error: str
    timed_out: bool = False
    kind: OutcomeKind = OutcomeKind.unreachable


@dataclass(frozen=True)
class RateLimited:
    retry_after: int
    kind: OutcomeKind = OutcomeKind.rate_limited


ResolverOutcome = Union[Resolved, Malformed, Unreachable, RateLimited]


@dataclass(frozen=True)
class ChatReply:
    filter: PlaceFilter
    message: str
    recommended_place: str | None = None
    inferred: bool = False
