"""
Application configuration using Pydantic Settings.
"""

from __future__ import annotations
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import LLMSettings


class Settings(BaseSettings):
    """Application settings loaded from AYUGPT_* environment variables or .env."""

    # Remote model (any OpenAI-compatible endpoint)
    openai_api_key: str = ""
    # e.g. "https://generativelanguage.googleapis.com/v1beta/openai/" for Gemini
    openai_base_url: Optional[str] = None
    chat_model: str = "gpt-4o-mini"
    title_model: str = "gpt-4o-mini"
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 1024

    # Persistence
    data_dir: Path = Path(".ayugpt")
    storage_key: str = "ayugpt_sessions"
    persist_debounce_seconds: float = 1.0

    # Sharing
    share_max_chars: int = 20000
    share_query_param: str = "share"
    public_url: str = "http://localhost:8501/"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="AYUGPT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    def chat_settings(self) -> LLMSettings:
        """LLMSettings for the streamed assistant reply."""
        return LLMSettings(
            model=self.chat_model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
