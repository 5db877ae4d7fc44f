from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    duckdb_path: str
    ledger_api_url: str | None
    fetch_timeout_seconds: float
    rate_limit_per_minute: int
    debug: bool


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        duckdb_path=os.environ.get("DUCKDB_PATH", ":memory:"),
        ledger_api_url=os.environ.get("LEDGER_API_URL") or None,
        fetch_timeout_seconds=float(os.environ.get("FETCH_TIMEOUT_SECONDS", "10")),
        rate_limit_per_minute=int(os.environ.get("API_RATE_LIMIT_PER_MINUTE", "60")),
        debug=os.environ.get("API_DEBUG", "false").lower() == "true",
    )
