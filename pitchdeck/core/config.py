"""
Centralised configuration via Pydantic Settings.

Reads from .env in dev and from environment variables in production.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    # ── Database (document store) ───────────────────────────
    database_url: str = "sqlite+aiosqlite:///./dev.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def assemble_db_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgres:// but SQLAlchemy needs postgresql+asyncpg://."""
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://"):
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url

    # ── LLM: Gemini ────────────────────────────────────────
    google_api_key: str = ""

    # Model routing
    model_outline: str = "gemini-2.5-pro"
    model_slides: str = "gemini-2.5-flash"
    model_review: str = "gemini-2.5-flash"

    llm_timeout_seconds: float = Field(
        default=120.0, description="Per-call deadline; a timeout fails only that call"
    )
    outline_max_tokens: int = 16_000

    # ── Pipelines ───────────────────────────────────────────
    # Raise instead of dropping when a stage patches a key its state does not declare.
    strict_state_keys: bool = False

    # ── Security ────────────────────────────────────────────
    api_key: str = "change-me"
    generation_rate_limit: str = "10/minute"


@lru_cache
def get_settings() -> Settings:
    return Settings()
