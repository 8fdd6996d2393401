from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = os.getenv("HALALMAP_URL", "http://localhost:8000")
    request_timeout: float = 30.0
    max_chat_attempts: int = 2
    default_retry_after: int = 10
    max_display_places: int = 10
    max_context_places: int = 15
    max_history_turns: int = 10
    max_free_queries: int = 3
    state_path: Path = Path(os.getenv("HALALMAP_STATE", str(Path.home() / ".halalmap" / "state.json")))


DEFAULT_CLIENT_CONFIG = ClientConfig()
