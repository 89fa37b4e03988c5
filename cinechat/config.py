"""
CineChat — Application Settings

Design patterns:
  - Singleton: single Settings instance shared everywhere
  - Configuration Object: centralizes all env-based config
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration sourced from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── TMDB ──────────────────────────────────────────────
    tmdb_api_read_token: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base: str = "https://image.tmdb.org/t/p/w500"
    tmdb_language: str = "en-US"
    tmdb_timeout_seconds: float = 30.0
    tmdb_max_concurrency: int = 8
    tmdb_cache_ttl_seconds: int = 3600

    # ── App ───────────────────────────────────────────────
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "info"

    # ── Conversation engine ───────────────────────────────
    results_per_turn: int = 6
    trending_window: str = "week"                # "day" | "week"
    fallback_cache_ttl_seconds: int = 300
    session_ttl_minutes: int = 120
    known_profiles_path: Optional[str] = None    # overrides the bundled table

    # ── Derived helpers ───────────────────────────────────
    @property
    def tmdb_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.tmdb_api_read_token}",
            "Accept": "application/json",
        }


# Singleton – import this everywhere
settings = Settings()
