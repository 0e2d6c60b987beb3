"""
Configuration settings for the AI Website Generator.
Loads from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "AI Website Generator"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # AI
    anthropic_api_key: Optional[str] = None
    ai_model: str = "claude-sonnet-4-20250514"

    # Publishing
    github_token: Optional[str] = None
    vercel_token: Optional[str] = None
    vercel_project_settle_seconds: float = 2.0

    # Stock images
    pexels_api_key: Optional[str] = None
    unsplash_access_key: Optional[str] = None
    image_timeout_seconds: float = 3.0

    # Jobs
    job_retention_seconds: int = 3600
    job_sweep_interval_seconds: int = 3600
    status_poll_interval_seconds: float = 2.0
    status_stream_max_seconds: float = 900.0

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # CRM (GoHighLevel)
    ghl_webhook_url: Optional[str] = None
    ghl_gift_webhook: Optional[str] = None
    onboarding_webhook_url: Optional[str] = None
    ghl_api_key: Optional[str] = None
    ghl_calendar_id: Optional[str] = None
    ghl_webhook_secret: Optional[str] = None

    # Sites
    site_registry_max_sites: int = 100

    # Rate limiting (per client IP)
    rate_limit_enabled: bool = True
    rate_limit_default: str = "20/minute"
    rate_limit_contact: str = "10/minute"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()
