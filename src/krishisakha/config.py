"""Runtime configuration for the Krishi Sakha services."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="krishisakha_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"

    # Hosted text generation (Gemini generateContent)
    generator_endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models"
    generator_model: str = "gemini-2.0-flash-exp"
    generator_api_key: str | None = None
    generator_temperature: float = 0.7
    generator_max_output_tokens: int = 500
    generator_timeout_seconds: float = 30.0
    use_model_generator: bool = True

    # Retrieval
    retrieval_max_attempts: int = 3
    retrieval_retry_delay_seconds: float = 1.0
    cache_max_entries: int = 512
    random_seed: int | None = None

    # Query history persistence
    history_limit: int = 10
    history_max_attempts: int = 3
    history_retry_delay_seconds: float = 0.5

    # CORS
    cors_allow_origins: tuple[str, ...] = ()
    cors_allow_credentials: bool = False
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "DELETE", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    # Security
    api_key: str | None = None  # if set, required in X-API-Key header
    rate_limit_requests: int = 60  # per window per client
    rate_limit_window_seconds: int = 60

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def generator_enabled(self) -> bool:
        return self.use_model_generator and bool(self.generator_api_key)


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
