"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    catalog_base_url: str
    catalog_api_key: str | None = None
    favorites_user_id: str
    admin_token: str
    log_level: str = "INFO"
    cache_dir: Path = Path(".craftify-cache")
    remote_timeout_seconds: float = 10.0
    remote_retry_attempts: int = 3
    remote_retry_base_delay_seconds: float = 0.5
    refresh_cooldown_seconds: float = 30.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
