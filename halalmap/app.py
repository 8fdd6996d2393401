from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events, record_event
from .auth.dependencies import get_current_user, require_admin, require_user
from .auth.models import LoginRequest, SignupRequest
from .auth.users import UserExists, authenticate, create_user
from .chat.intent import build_reply, resolve_intent, summarize_outcome
from .chat.models import ChatRequest, ChatResponse, PlacePreview, RateLimited
from .places.cache import search_cache
from .places.config import MAX_PLACES_LIMIT
from .places.models import (
    HALAL_STATUS,
    PlaceFilter,
    RatingsRequest,
    SearchRequest,
    SearchResponse,
)
from .places.ratings import RatingsUnavailable, fetch_ratings
from .places.search import search_places
from .places.store import PlaceStoreError, get_store
from .suggestions.intake import InvalidSuggestion, get_suggestions, submit_suggestion
from .suggestions.models import SuggestionRequest, SuggestionResponse

logger = logging.getLogger(__name__)

MAX_PREVIEW_PLACES = 10

app = FastAPI(title="Halal Map API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=os.environ.get("SESSION_SECRET", "halalmap-secret-change-in-production"),
)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata():
    try:
        places = get_store().all(limit=MAX_PLACES_LIMIT)
    except PlaceStoreError as exc:
        return _error(502, f"Could not load places: {exc}")
    cities = sorted({p.city for p in places if p.city})
    categories = sorted({p.cuisine_category for p in places if p.cuisine_category})
    subtypes = sorted({p.cuisine_subtype for p in places if p.cuisine_subtype})
    tags = sorted({t for p in places for t in p.tags})
    return {
        "cities": cities,
        "cuisine_categories": categories,
        "cuisine_subtypes": subtypes,
        "tags": tags,
        "halal_statuses": [
            {"value": s.value, "label": s.label, "color": s.color, "description": s.description}
            for s in HALAL_STATUS.values()
        ],
    }


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/signup", status_code=201)
def signup(body: SignupRequest, request: Request) -> dict:
    try:
        user = create_user(body.username, body.password)
    except UserExists as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Chat endpoint ────────────────────────────────────────────────────────


def _preview_places(place_filter: PlaceFilter) -> list[PlacePreview] | None:
    if place_filter.is_empty() or place_filter.favorites:
        return None
    try:
        places = search_places(place_filter)
    except PlaceStoreError:
        logger.warning("Place preview failed for chat reply", exc_info=True)
        return None
    return [
        PlacePreview(name=p.name, cuisine=p.cuisine_label)
        for p in places[:MAX_PREVIEW_PLACES]
    ]


@app.post("/api/chat", response_model=ChatResponse)
def chat(body: ChatRequest, request: Request):
    guest = get_current_user(request) is None

    # 1. Ask the LLM for a filter
    outcome = resolve_intent(body.messages, body.context)

    # 2. Rate limits go back to the client, which owns the retry
    if isinstance(outcome, RateLimited):
        record_event("chat", {**summarize_outcome(outcome, None), "guest": guest})
        return _error(
            429,
            "The assistant is busy right now.",
            retryAfter=outcome.retry_after,
        )

    # 3. Normalise, or fall back to keyword inference
    reply = build_reply(outcome, body.messages, body.context)

    record_event("chat", {**summarize_outcome(outcome, reply), "guest": guest})

    return ChatResponse(
        filter=reply.filter,
        message=reply.message,
        recommended_place=reply.recommended_place,
        places=_preview_places(reply.filter),
    )


# ── Place endpoints ──────────────────────────────────────────────────────


@app.get("/api/places", response_model=SearchResponse)
def list_places():
    try:
        places = get_store().all(limit=MAX_PLACES_LIMIT)
    except PlaceStoreError as exc:
        return _error(502, f"Could not load places: {exc}")
    return SearchResponse(places=places)


@app.post("/api/places/search", response_model=SearchResponse)
def places_search(body: SearchRequest):
    try:
        places = search_places(body.filter)
    except PlaceStoreError as exc:
        return _error(502, f"Search failed: {exc}")
    return SearchResponse(places=places)


@app.post("/api/places/suggest", response_model=SuggestionResponse)
def places_suggest(body: SuggestionRequest):
    try:
        submit_suggestion(body)
    except InvalidSuggestion as exc:
        return _error(400, str(exc))
    return SuggestionResponse(success=True, message="Suggestion submitted successfully")


@app.post("/api/places/ratings")
def places_ratings(body: RatingsRequest):
    try:
        ratings = fetch_ratings(body.place_ids)
    except RatingsUnavailable as exc:
        return _error(500, str(exc))
    return {"ratings": ratings}


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.get("/api/places/suggestions")
def list_suggestions(user: dict = Depends(require_admin)) -> dict:
    return {"suggestions": [s.model_dump() for s in get_suggestions()]}


@app.get("/analytics")
def analytics(user: dict = Depends(require_admin)) -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats(user: dict = Depends(require_admin)) -> dict:
    return search_cache.stats()
