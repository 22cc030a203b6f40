# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Third-party integrations (Stripe, Segmind, Late) are optional: the API
# starts without them and the affected endpoints answer 503 / 400.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify Supabase access tokens"
    )

    CHARACTER_IMAGES_BUCKET: str = Field(
        default="character-images",
        description="Public storage bucket for generated character images"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    CONTENT_SCHEDULE_INTERVAL_SECONDS: int = Field(
        default=900,
        ge=60,
        description="How often Celery beat checks for due content schedules"
    )

    CHARACTER_AUTOMATION_INTERVAL_SECONDS: int = Field(
        default=900,
        ge=60,
        description="How often Celery beat queues due character automations and works the queue"
    )

    # -------------------------------------------------------------------------
    # OpenAI / LLM Configuration
    # -------------------------------------------------------------------------

    OPENAI_API_KEY: str = Field(
        ...,
        description="OpenAI API key for character chat and tag generation"
    )

    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Model used for character chat, reactions and tags"
    )

    OPENAI_CONTENT_MODEL: str = Field(
        default="gpt-4o",
        description="Model used for creative content prompts (must support JSON mode)"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------

    STRIPE_SECRET_KEY: str = Field(
        default="",
        description="Stripe secret key (payments, Connect payouts)"
    )

    STRIPE_WEBHOOK_SECRET: str = Field(
        default="",
        description="Signing secret for the Stripe webhook endpoint"
    )

    # -------------------------------------------------------------------------
    # Image Generation / Social Scheduling
    # -------------------------------------------------------------------------

    SEGMIND_API_KEY: str = Field(
        default="",
        description="Segmind API key for image generation and face swap"
    )

    LATE_API_KEY: str = Field(
        default="",
        description="Shared Late API key used when a user has not configured one"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    APP_URL: str = Field(
        default="http://localhost:3000",
        description="Public web app URL used for checkout and onboarding redirects"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    SECRET_KEY: str = Field(
        default="dev-secret-key-change-in-production",
        min_length=16,
        description="Secret key for signing tokens"
    )

    CRON_SECRET: str = Field(
        default="",
        description="Bearer secret required by the content generation and character automation cron endpoints"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def app_url(self) -> str:
        return self.APP_URL.rstrip("/")

    @property
    def stripe_enabled(self) -> bool:
        """True when a Stripe secret key is configured."""
        return bool(self.STRIPE_SECRET_KEY)

    @property
    def segmind_enabled(self) -> bool:
        return bool(self.SEGMIND_API_KEY)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
