"""
Configuration management using Pydantic Settings.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Bridge Provider APIs
    # ===================
    across_api_url: str = Field(
        default="https://app.across.to/api",
        description="Across deposits API base URL"
    )
    relay_api_url: str = Field(
        default="https://api.relay.link",
        description="Relay requests API base URL"
    )
    lifi_api_url: str = Field(
        default="https://li.quest/v1",
        description="LI.FI analytics API base URL"
    )

    # ===================
    # Token Metadata (CoinMarketCap)
    # ===================
    coinmarketcap_api_url: str = Field(
        default="https://pro-api.coinmarketcap.com",
        description="CoinMarketCap Pro API base URL"
    )
    coinmarketcap_api_key: Optional[str] = Field(
        default=None,
        description="CoinMarketCap API key (token lookups are disabled without it)"
    )
    token_cache_ttl_seconds: int = Field(default=3600, ge=1)
    token_negative_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="How long an unresolved address is remembered before another lookup"
    )

    # ===================
    # HTTP / Pagination
    # ===================
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    across_page_size: int = Field(default=100, ge=1, le=1000)
    across_max_offset: int = Field(default=10000, ge=1)
    max_pages: int = Field(default=100, ge=1)

    # ===================
    # Retry Policy
    # ===================
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    retry_max_delay_seconds: float = Field(default=8.0, ge=0)

    # ===================
    # Aggregation
    # ===================
    aggregation_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Overall deadline for one aggregation; partial provider results are kept"
    )

    # ===================
    # API Server
    # ===================
    wrapped_year: int = Field(default=2025)
    min_year: int = Field(default=2020)
    max_year: int = Field(default=2030)
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Comma-separated allowed CORS origins"
    )

    # ===================
    # Logging
    # ===================
    log_level: str = Field(default="INFO")

    @field_validator("coinmarketcap_api_key")
    @classmethod
    def blank_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty key as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def allowed_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def token_lookup_enabled(self) -> bool:
        """Check whether the external token metadata lookup is configured."""
        return bool(self.coinmarketcap_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
