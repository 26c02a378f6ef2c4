from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _load_env() -> None:
    base_path = Path(__file__).resolve()
    candidates = [
        base_path.parents[1] / ".env",  # api/.env
        base_path.parents[2] / ".env",  # repo root .env
    ]
    for path in candidates:
        if path.exists():
            load_dotenv(dotenv_path=path, override=False)
    # As a fallback, load default .env in current working dir
    load_dotenv(override=False)


_load_env()


@dataclass
class Settings:
    # Base
    app_name: str = "marketsearch-api"
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # CORS/frontends
    cors_origins: list[str] = field(
        default_factory=lambda: os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
    )

    # Supabase
    supabase_url: str | None = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_key: str | None = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    )
    supabase_timeout: float = field(default_factory=lambda: float(os.getenv("SUPABASE_TIMEOUT", "20")))

    # Search
    search_default_limit: int = field(default_factory=lambda: int(os.getenv("SEARCH_DEFAULT_LIMIT", "50")))
    search_page_size: int = field(default_factory=lambda: int(os.getenv("SEARCH_PAGE_SIZE", "20")))
    popular_search_window_days: int = field(
        default_factory=lambda: int(os.getenv("POPULAR_SEARCH_WINDOW_DAYS", "30"))
    )


def get_settings() -> Settings:
    return Settings()
