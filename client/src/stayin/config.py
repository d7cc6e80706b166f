"""Configuration and environment loading for StayIN."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    supabase_url: str
    supabase_key: str
    profiles_table: str = "profiles"

    # Local store
    local_store_path: str = "stayin.db"

    # Asset preload
    asset_urls: list[str] = Field(default_factory=list)
    asset_cache_dir: str = ".stayin-assets"
    asset_timeout: float = 30.0

    # Profile resolution
    profile_fetch_timeout: float = 10.0  # Seconds per attempt
    profile_fetch_retries: int = 3  # Attempts before treating profile as absent
    profile_fetch_backoff: float = 0.5  # Base delay, doubled per attempt

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
