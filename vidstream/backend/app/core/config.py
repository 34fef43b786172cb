"""
Vidstream Core Settings — Engagement & Social-Graph Engine.

Every field can be overridden through the environment with the
``VIDSTREAM_`` prefix, or through a local ``.env`` file.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="VIDSTREAM_", case_sensitive=False, extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Vidstream"
    app_version: str = "1.2.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "vidstream"
    db_password: str = "vidstream_secret"
    db_name: str = "vidstream"
    db_echo: bool = False
    # Full URL, wins over the db_* parts (e.g. sqlite+aiosqlite for local runs)
    database_url_override: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Identity ─────────────────────────────────────────────────────────
    # Header set by the upstream auth gateway with the caller's user id
    user_header: str = "X-User-Id"

    # ── Engagement ───────────────────────────────────────────────────────
    toggle_max_attempts: int = 3

    # ── Notifications ────────────────────────────────────────────────────
    notification_queue_size: int = 100

    # ── Feed ─────────────────────────────────────────────────────────────
    feed_default_page_size: int = 10
    feed_max_page_size: int = 100

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return "INFO"
        return v_upper

    @field_validator("toggle_max_attempts", "notification_queue_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()
