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
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance, or via
    `get_settings()` where a fresh lookup is wanted (tests clear the cache).
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
        description="Legacy HS256 secret used to verify Supabase Auth tokens"
    )

    STORAGE_BUCKET: str = Field(
        default="posts",
        description="Storage bucket holding listing media"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
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

    PUBLIC_BASE_URL: str = Field(
        default="http://localhost:3000",
        description="Public site URL used for canonical links and payment callbacks"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Peers allowed to set X-Forwarded-For / X-Forwarded-Proto (uvicorn ProxyHeadersMiddleware)
    FORWARDED_ALLOW_IPS: str = Field(
        default="127.0.0.1",
        description="Comma-separated proxy addresses or CIDRs whose forwarding headers are trusted"
    )

    CRON_SECRET: str = Field(
        default="",
        description="Shared secret for scheduler-triggered endpoints (empty disables them)"
    )

    ADMIN_API_KEY: str = Field(
        default="",
        description="API key for admin endpoints (empty disables them)"
    )

    # -------------------------------------------------------------------------
    # Payment Providers
    # -------------------------------------------------------------------------

    PAYFAST_MERCHANT_ID: str = Field(default="10000100")
    PAYFAST_MERCHANT_KEY: str = Field(default="46f0cd694581a")
    PAYFAST_PASSPHRASE: str = Field(
        default="",
        description="Optional PayFast passphrase appended to the signature string"
    )
    PAYFAST_IS_TEST: bool = Field(
        default=True,
        description="Use the PayFast sandbox and allow loopback ITN callers"
    )
    # PayFast publishes its ITN source addresses as these ranges
    PAYFAST_VALID_IP_RANGES: str = Field(
        default="197.97.145.144/28,41.74.179.192/27",
        description="Comma-separated CIDR ranges PayFast notifies from"
    )

    OZOW_SITE_CODE: str = Field(default="")
    OZOW_PRIVATE_KEY: str = Field(default="")
    OZOW_IS_TEST: bool = Field(default=True)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    SUBSCRIPTION_PERIOD_DAYS: int = Field(
        default=30,
        ge=1,
        description="Length of a paid or trial subscription period"
    )

    FREE_RESET_CYCLE_DAYS: int = Field(
        default=7,
        ge=1,
        description="Length of the free-tier content cycle"
    )

    # -------------------------------------------------------------------------
    # Media Settings
    # -------------------------------------------------------------------------

    MAX_UPLOAD_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum media upload size in MB"
    )

    ALLOWED_CONTENT_TYPES: str = Field(
        default="image/jpeg,image/jpg,image/png,image/webp,video/mp4,video/webm",
        description="Allowed upload MIME types (comma-separated)"
    )

    WATERMARK_TEXT: str = Field(
        default="A2Z.co.za",
        description="Text stamped on free-tier images"
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

        Example: "http://localhost:3000, https://a2z.co.za" -> ["http://localhost:3000", "https://a2z.co.za"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def payfast_ip_ranges(self) -> list[str]:
        return [r.strip() for r in self.PAYFAST_VALID_IP_RANGES.split(",") if r.strip()]

    @property
    def allowed_content_types_list(self) -> list[str]:
        return [t.strip().lower() for t in self.ALLOWED_CONTENT_TYPES.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """
        Convert MB to bytes for file size validation.
        """
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def base_url(self) -> str:
        return self.PUBLIC_BASE_URL.rstrip("/")

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

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
