"""
Dayboard — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from dayboard/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram front-end (only needed when running the bot)
    TELEGRAM_BOT_TOKEN: str = ""

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # SQLite document store
    DATABASE_PATH: str = "data/dayboard.db"

    # "Today" is evaluated in this zone
    TIMEZONE: str = "UTC"

    # Analytics
    METRICS_WINDOW_DAYS: int = 30

    # Recurrence hardening (both off by default)
    ENFORCE_RECURRENCE_INTERVAL: bool = False
    IDEMPOTENT_MATERIALIZATION: bool = False

    # HTTP API
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("METRICS_WINDOW_DAYS", "API_PORT", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator(
        "ENFORCE_RECURRENCE_INTERVAL", "IDEMPOTENT_MATERIALIZATION", mode="before",
    )
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in _TRUE_VALUES


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/dayboard.db"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        METRICS_WINDOW_DAYS=os.getenv("METRICS_WINDOW_DAYS", "30"),
        ENFORCE_RECURRENCE_INTERVAL=os.getenv("ENFORCE_RECURRENCE_INTERVAL", "false"),
        IDEMPOTENT_MATERIALIZATION=os.getenv("IDEMPOTENT_MATERIALIZATION", "false"),
        API_HOST=os.getenv("API_HOST", "127.0.0.1"),
        API_PORT=os.getenv("API_PORT", "8000"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton, imported by all other modules as:
#   from dayboard.config import settings
settings = _load_settings()
