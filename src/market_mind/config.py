from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Hosted model backend: gemini|openai
    MARKETMIND_PROVIDER: str = "gemini"

    GEMINI_API_KEY: str | None = None
    # Fast model handles grounded scans; deep model handles the schema-bound persona and ranking work.
    GEMINI_FAST_MODEL: str = "gemini-3-flash-preview"
    GEMINI_DEEP_MODEL: str = "gemini-3-pro-preview"

    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: str | None = None

    # Where session results, holdings, saved scans and usage counters are kept.
    MARKETMIND_STATE_DIR: str = "~/.market_mind"
    MARKETMIND_LOG_LEVEL: str = "WARNING"

    @property
    def provider(self) -> str:
        return (self.MARKETMIND_PROVIDER or "gemini").strip().lower()

    @property
    def gemini_api_key(self) -> str | None:
        return self.GEMINI_API_KEY

    @property
    def fast_model(self) -> str:
        if self.provider == "openai":
            return self.OPENAI_MODEL
        return self.GEMINI_FAST_MODEL

    @property
    def deep_model(self) -> str:
        if self.provider == "openai":
            return self.OPENAI_MODEL
        return self.GEMINI_DEEP_MODEL

    @property
    def openai_api_key(self) -> str | None:
        return self.OPENAI_API_KEY

    @property
    def openai_base_url(self) -> str | None:
        return self.OPENAI_BASE_URL

    @property
    def state_dir(self) -> Path:
        return Path(self.MARKETMIND_STATE_DIR).expanduser()

    @property
    def log_level(self) -> str:
        return (self.MARKETMIND_LOG_LEVEL or "WARNING").strip().upper()


def load_settings() -> Settings:
    return Settings()
