from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import httpx
import pandas as pd
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, SupabaseException, create_client

from .config import DEFAULT_STORE_CONFIG, StoreConfig
from .models import Place
from .query import Clause, PlaceQuery, Predicate

logger = logging.getLogger(__name__)


class PlaceStoreError(Exception):
    """The places table could not be read."""


class PlaceStore(Protocol):
    def all(self, limit: int) -> list[Place]: ...

    def query(self, query: PlaceQuery, limit: int) -> list[Place]: ...


def _row_to_place(row: dict[str, Any]) -> Place:
    clean: dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, float) and pd.isna(value):
            value = None
        elif isinstance(value, str) and not value.strip():
            value = None
        clean[key] = value
    return Place(**clean)


# ── CSV / pandas ─────────────────────────────────────────────────────────


def load_places_frame(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df["tags"] = df["tags"].apply(lambda s: [t.strip() for t in s.split("|") if t.strip()])
    for col in ("lat", "lng"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


class DataFrameStore:
    """Places held in memory, queried with boolean masks."""

    def __init__(self, df: pd.DataFrame) -> None:
        self._df = df

    @classmethod
    def from_csv(cls, path: Path) -> DataFrameStore:
        return cls(load_places_frame(path))

    def _predicate_mask(self, pred: Predicate) -> pd.Series:
        if pred.column not in self._df.columns:
            return pd.Series(False, index=self._df.index)
        column = self._df[pred.column]
        if pred.op == "contains":
            return column.apply(lambda values: pred.value in (values or []))
        text = column.fillna("").astype(str)
        if pred.op == "eq":
            return text == pred.value
        return text.str.contains(pred.value, case=False, regex=False)

    def _clause_mask(self, clause: Clause) -> pd.Series:
        mask = pd.Series(False, index=self._df.index)
        for pred in clause.any_of:
            mask = mask | self._predicate_mask(pred)
        return mask

    def _to_places(self, frame: pd.DataFrame) -> list[Place]:
        return [_row_to_place(row) for row in frame.to_dict(orient="records")]

    def all(self, limit: int) -> list[Place]:
        return self._to_places(self._df.head(limit))

    def query(self, query: PlaceQuery, limit: int) -> list[Place]:
        mask = pd.Series(True, index=self._df.index)
        for clause in query.clauses:
            mask = mask & self._clause_mask(clause)
        return self._to_places(self._df.loc[mask].head(limit))


# ── Supabase ─────────────────────────────────────────────────────────────


def _render_predicate(pred: Predicate) -> str:
    # Values are sanitized upstream, so double quotes never appear inside.
    if pred.op == "contains":
        return f'{pred.column}.cs.{{"{pred.value}"}}'
    if pred.op == "eq":
        return f'{pred.column}.eq."{pred.value}"'
    return f'{pred.column}.ilike."*{pred.value}*"'


def render_or_filter(clause: Clause) -> str:
    """PostgREST ``or`` filter text for a multi-predicate clause."""
    return ",".join(_render_predicate(p) for p in clause.any_of)


def apply_clause(builder: Any, clause: Clause) -> Any:
    """Add one clause to a supabase query builder; successive clauses are AND-ed."""
    if len(clause.any_of) > 1:
        return builder.or_(render_or_filter(clause))
    pred = clause.any_of[0]
    if pred.op == "contains":
        return builder.contains(pred.column, [pred.value])
    if pred.op == "eq":
        return builder.eq(pred.column, pred.value)
    return builder.ilike(pred.column, f"%{pred.value}%")


class SupabaseStore:
    """Places read from a hosted Supabase table."""

    def __init__(self, config: StoreConfig = DEFAULT_STORE_CONFIG, client: Client | None = None) -> None:
        self._config = config
        if client is None:
            try:
                client = create_client(config.supabase_url, config.supabase_key)
            except SupabaseException as exc:
                logger.error("Supabase client could not be created: %s", exc)
                raise PlaceStoreError(str(exc)) from exc
        self._client = client

    def _select(self, query: PlaceQuery, limit: int) -> list[Place]:
        builder = self._client.table(self._config.table).select("*")
        for clause in query.clauses:
            builder = apply_clause(builder, clause)
        try:
            response = builder.limit(limit).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            logger.error("Supabase places query failed: %s", exc)
            raise PlaceStoreError(str(exc)) from exc
        return [_row_to_place(row) for row in response.data or []]

    def all(self, limit: int) -> list[Place]:
        return self._select(PlaceQuery(), limit)

    def query(self, query: PlaceQuery, limit: int) -> list[Place]:
        return self._select(query, limit)


_store: PlaceStore | None = None


def get_store(config: StoreConfig = DEFAULT_STORE_CONFIG) -> PlaceStore:
    """Return the configured place store, creating it on first call."""
    global _store
    if _store is None:
        if config.use_supabase:
            _store = SupabaseStore(config)
        else:
            _store = DataFrameStore.from_csv(config.csv_path)
    return _store
