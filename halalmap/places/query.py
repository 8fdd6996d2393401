"""
PlaceFilter -> store-agnostic query.

A query is a conjunction of clauses; each clause is a disjunction of column
predicates. Distinct filter dimensions are AND-ed, candidates within one
dimension are OR-ed. Stores decide how to execute it (pandas masks,
supabase builder filters).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .models import PlaceFilter
from .sanitize import sanitize_input

Op = Literal["ilike", "contains", "eq"]

KEYWORD_COLUMNS = ("name", "address", "city")
SEARCH_TERM_COLUMNS = ("name", "address", "city", "cuisine_category", "cuisine_subtype")


@dataclass(frozen=True)
class Predicate:
    column: str
    op: Op
    value: str


@dataclass(frozen=True)
class Clause:
    any_of: tuple[Predicate, ...]


@dataclass(frozen=True)
class PlaceQuery:
    clauses: tuple[Clause, ...] = field(default_factory=tuple)

    @property
    def is_unconstrained(self) -> bool:
        return not self.clauses


def _ilike_any(columns: tuple[str, ...], value: str) -> list[Predicate]:
    return [Predicate(col, "ilike", value) for col in columns]


def build_query(place_filter: PlaceFilter) -> PlaceQuery:
    clauses: list[Clause] = []

    cuisine: list[Predicate] = []
    subtype = sanitize_input(place_filter.cuisine_subtype)
    if subtype:
        cuisine.append(Predicate("cuisine_subtype", "ilike", subtype))
    category = sanitize_input(place_filter.cuisine_category)
    if category:
        cuisine.append(Predicate("cuisine_category", "ilike", category))
    if cuisine:
        clauses.append(Clause(tuple(cuisine)))

    keyword = sanitize_input(place_filter.keyword)
    if keyword:
        clauses.append(Clause(tuple(_ilike_any(KEYWORD_COLUMNS, keyword))))

    tag = sanitize_input(place_filter.tag)
    if tag:
        clauses.append(Clause((Predicate("tags", "contains", tag),)))

    price = sanitize_input(place_filter.price_level)
    if price:
        clauses.append(Clause((Predicate("price_level", "ilike", price),)))

    status = sanitize_input(place_filter.halal_status)
    if status:
        clauses.append(Clause((Predicate("halal_status", "ilike", status),)))

    # Legacy looser mode: any term matching any column qualifies the row.
    term_predicates: list[Predicate] = []
    for term in place_filter.search_terms or []:
        cleaned = sanitize_input(term)
        if cleaned:
            term_predicates.extend(_ilike_any(SEARCH_TERM_COLUMNS, cleaned))
    if term_predicates:
        clauses.append(Clause(tuple(term_predicates)))

    # favorites is resolved against the client's FavoriteSet, never here.
    return PlaceQuery(tuple(clauses))
