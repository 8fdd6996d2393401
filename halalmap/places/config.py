from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

MAX_PLACES_LIMIT = 2000


@dataclass(frozen=True)
class StoreConfig:
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    table: str = "places"
    csv_path: Path = Path(__file__).resolve().parent.parent / "data" / "places.csv"

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@dataclass(frozen=True)
class GooglePlacesConfig:
    api_key: str = os.getenv("GOOGLE_PLACES_API_KEY", "")
    base_url: str = "https://places.googleapis.com/v1/places"
    max_places: int = 10
    timeout: float = 10.0


DEFAULT_STORE_CONFIG = StoreConfig()
DEFAULT_GOOGLE_CONFIG = GooglePlacesConfig()
