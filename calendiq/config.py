"""
Calendiq — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from calendiq/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Local storage (SQLite file holding events, profile and chat history)
    DATABASE_PATH: str = "data/calendiq.db"

    # Remote event API; empty disables remote sync and the assistant
    REMOTE_API_URL: str = ""
    REMOTE_TIMEOUT_SECONDS: float = 5.0

    # Connectivity probing (HTTP polling monitor)
    CONNECTIVITY_POLL_SECONDS: float = 30.0

    # LLM, provider-agnostic (openai, anthropic, gemini, cohere); server side only
    LLM_PROVIDER: str = "openai"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""

    # Remote API server (main.py)
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    @field_validator("REMOTE_API_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/")

    @field_validator("REMOTE_TIMEOUT_SECONDS", "CONNECTIVITY_POLL_SECONDS", mode="before")
    @classmethod
    def parse_positive_seconds(cls, v: str | float) -> float:
        seconds = float(v)
        if seconds <= 0:
            raise ValueError(f"must be a positive number of seconds, got {v!r}")
        return seconds

    @field_validator("API_PORT", mode="before")
    @classmethod
    def parse_port(cls, v: str | int) -> int:
        return int(v)

    @property
    def remote_enabled(self) -> bool:
        return bool(self.REMOTE_API_URL)


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/calendiq.db"),
        REMOTE_API_URL=os.getenv("REMOTE_API_URL", ""),
        REMOTE_TIMEOUT_SECONDS=os.getenv("REMOTE_TIMEOUT_SECONDS", "5"),
        CONNECTIVITY_POLL_SECONDS=os.getenv("CONNECTIVITY_POLL_SECONDS", "30"),
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "openai"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
        API_HOST=os.getenv("API_HOST", "127.0.0.1"),
        API_PORT=os.getenv("API_PORT", "8000"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton, imported by all other modules as:
#   from calendiq.config import settings
settings = _load_settings()
