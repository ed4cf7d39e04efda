"""Application settings using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Solwatch configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Application
    app_name: str = Field(default="Solwatch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum log level"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")

    # Database - Supabase
    supabase_url: str = Field(description="Supabase project URL")
    supabase_key: SecretStr = Field(description="Supabase API key")
    postgres_schema: str = Field(
        default="solwatch", description="PostgreSQL schema for Solwatch tables"
    )

    # Redis (cache, work queue, fan-out broker)
    redis_url: str = Field(
        default="", description="Redis URL; empty selects in-process backends"
    )
    redis_key_prefix: str = Field(default="solwatch", description="Redis key namespace")

    # Solana RPC
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana RPC endpoint URL",
    )
    solana_ws_url: str = Field(
        default="wss://api.mainnet-beta.solana.com",
        description="Solana websocket endpoint for logs subscriptions",
    )
    rpc_timeout_seconds: float = Field(default=5.0, gt=0, description="RPC call timeout")

    # External APIs
    helius_api_key: SecretStr = Field(default=SecretStr(""), description="Helius API key")
    helius_api_url: str = Field(default="https://api.helius.xyz", description="Helius API URL")
    dexscreener_base_url: str = Field(
        default="https://api.dexscreener.com", description="DexScreener API URL"
    )
    jupiter_price_url: str = Field(
        default="https://lite-api.jup.ag", description="Jupiter price API URL"
    )
    raydium_api_url: str = Field(
        default="https://api-v3.raydium.io", description="Raydium pool API URL"
    )
    token_registry_path: str | None = Field(
        default=None, description="Optional JSON token list loaded at startup"
    )

    # Ingestion
    ingest_batch_size: int = Field(default=200, ge=1, le=1000, description="Queue pop size")
    ingest_concurrency: int = Field(
        default=10, ge=1, le=100, description="Concurrent transaction fetches"
    )
    processed_marker_ttl_seconds: int = Field(
        default=60, ge=1, description="Idempotency marker expiry"
    )
    failed_marker_ttl_seconds: int = Field(
        default=24 * 3600, ge=60, description="Marker expiry after a permanent failure"
    )
    dust_threshold_sol: float = Field(
        default=0.001, ge=0, description="Minimum SOL delta to classify a transaction"
    )
    process_max_attempts: int = Field(
        default=3, ge=1, description="Processing attempts before giving up on an event"
    )
    retry_base_delay_seconds: float = Field(default=1.0, gt=0, description="Retry base delay")
    retry_max_delay_seconds: float = Field(default=30.0, gt=0, description="Retry delay cap")
    backfill_signature_limit: int = Field(
        default=20, ge=0, le=1000, description="Signatures enqueued when a wallet is added"
    )

    # Pricing
    price_cache_ttl_seconds: int = Field(default=30, ge=1, description="Price cache TTL")
    price_batch_window_ms: int = Field(
        default=100, ge=0, description="Window for coalescing single price requests"
    )
    price_source_timeout_seconds: float = Field(
        default=4.0, gt=0, description="Timeout for each price source attempt"
    )
    min_pool_liquidity_usd: float = Field(
        default=1000.0, ge=0, description="Pools below this liquidity are ignored"
    )
    native_refresh_seconds: int = Field(
        default=20, ge=5, description="Background SOL/USD refresh interval"
    )
    native_fallback_price_usd: float = Field(
        default=150.0, gt=0, description="Static SOL/USD used when every source fails"
    )
    price_sources: list[Literal["pools", "dexscreener", "jupiter"]] = Field(
        default=["pools", "dexscreener", "jupiter"],
        description="Ordered upstream price sources",
    )

    # Token metadata
    token_cache_ttl_seconds: int = Field(
        default=6 * 3600, ge=60, description="Token metadata cache TTL"
    )
    token_cache_max_size: int = Field(default=10000, ge=1, description="Token cache size")

    # Streaming subscription
    stream_max_reconnect_attempts: int = Field(
        default=10, ge=1, description="Reconnect attempts before giving up"
    )
    stream_reconnect_base_delay: float = Field(default=1.0, gt=0, description="Backoff base")
    stream_reconnect_max_delay: float = Field(default=60.0, gt=0, description="Backoff cap")

    # Maintenance
    cache_eviction_interval_seconds: int = Field(
        default=60, ge=1, description="Interval of the cache eviction job"
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate Supabase URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Supabase URL must start with http:// or https://")
        return v

    @field_validator("solana_ws_url")
    @classmethod
    def validate_ws_url(cls, v: str) -> str:
        """Validate websocket URL format."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("Solana websocket URL must start with ws:// or wss://")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format (empty allowed)."""
        if v and not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss:// or unix://")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]  # Values from env
