"""
AssetMint Configuration Management

Centralized configuration using Pydantic Settings for type-safe environment
variable loading with validation.

Every external collaborator (content storage, persistence, e-mail, chain data)
is optional: an unset URL or credential puts that collaborator in its
degraded or local mode instead of failing at startup.
"""

from functools import lru_cache
from typing import Literal

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

    # ═══════════════════════════════════════════════════════════════
    # APPLICATION
    # ═══════════════════════════════════════════════════════════════
    app_name: str = Field(default="assetmint", description="Application name")
    app_env: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN for error tracking")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")

    # ═══════════════════════════════════════════════════════════════
    # CONTENT STORAGE (Pinata / IPFS)
    # ═══════════════════════════════════════════════════════════════
    pinata_jwt: str | None = Field(default=None, description="Pinata JWT")
    pinata_gateway: str = Field(
        default="https://gateway.pinata.cloud", description="IPFS retrieval gateway"
    )
    pinata_upload_url: str = Field(
        default="https://uploads.pinata.cloud/v3/files", description="Pinata upload endpoint"
    )
    pinata_api_url: str = Field(
        default="https://api.pinata.cloud", description="Pinata management API"
    )
    pinata_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Upload timeout in seconds"
    )

    # ═══════════════════════════════════════════════════════════════
    # PERSISTENCE (Supabase / PostgREST)
    # ═══════════════════════════════════════════════════════════════
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_anon_key: str | None = Field(default=None, description="Supabase anon key")
    supabase_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Request timeout in seconds"
    )
    eth_usd_rate: float = Field(
        default=3200.0, gt=0, description="ETH to USD rate used for *_usd columns"
    )

    # ═══════════════════════════════════════════════════════════════
    # CHAIN DATA (Alchemy)
    # ═══════════════════════════════════════════════════════════════
    alchemy_rpc_url: str | None = Field(default=None, description="Alchemy JSON-RPC URL")

    # ═══════════════════════════════════════════════════════════════
    # NOTIFICATIONS
    # ═══════════════════════════════════════════════════════════════
    notification_from_name: str = Field(
        default="AssetMint", description="Display name used in e-mail subjects and footers"
    )
    notification_fallback_email: str | None = Field(
        default=None,
        description="Address used when a recipient is a wallet rather than an e-mail address",
    )
    notification_timeout_seconds: float = Field(
        default=10.0, gt=0, description="E-mail dispatch timeout in seconds"
    )

    # ═══════════════════════════════════════════════════════════════
    # READ CACHE
    # ═══════════════════════════════════════════════════════════════
    cache_assets_ttl_seconds: float = Field(default=30.0, gt=0)
    cache_asset_ttl_seconds: float = Field(default=15.0, gt=0)
    cache_platform_stats_ttl_seconds: float = Field(default=60.0, gt=0)
    cache_wallet_balance_ttl_seconds: float = Field(default=30.0, gt=0)

    @field_validator("supabase_url", "alchemy_rpc_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize base URLs so paths can be appended directly."""
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            return v or None
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton settings instance
settings = get_settings()
