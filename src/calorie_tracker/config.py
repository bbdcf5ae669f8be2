"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: str = _ENVIRONMENT
    log_level: str = "INFO"

    storage_backend: str = "sqlalchemy"
    database_url: str = "sqlite:///./calorie_tracker.db"
    database_timeout_seconds: float = 10.0
    supabase_url: str | None = None
    supabase_service_key: str | None = None

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    clarifai_api_key: str | None = None
    clarifai_base_url: str = "https://api.clarifai.com/v2"

    timezone: str = "UTC"
    step_factor: float = 0.05
    max_image_bytes: int = 5_000_000
    stats_cache_ttl_seconds: int = 300
    stats_cache_max_entries: int = 1000
    ledger_retry_attempts: int = 3

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def is_local(self) -> bool:
        """Return true when internal error details may be shown to clients."""
        return self.environment == "local"
