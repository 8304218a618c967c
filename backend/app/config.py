"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/nftsync"

    # Chain (Base mainnet)
    rpc_url: str = "https://mainnet.base.org"
    nft_contract_address: str = "0x0000000000000000000000000000000000000000"
    nft_max_supply: int = 10000

    # Sync pipeline
    sync_default_batch_size: int = 100
    sync_max_batch_size: int = 500
    sync_default_batch_delay_ms: int = 3000
    sync_retry_max_attempts: int = 5
    sync_retry_base_delay_ms: int = 2000
    sync_checkpoint_kind: str = "nft_sync_token_progress"
    sync_checkpoint_interval: int = 10
    sync_progress_interval: int = 5
    sync_max_error_messages: int = 100  # Older messages are counted, not kept
    sync_lease_ttl_seconds: int = 900
    sync_stream_queue_size: int = 64

    # Scheduled sync (off by default; the admin endpoint is the main entry point)
    sync_schedule_enabled: bool = False
    sync_poll_interval_minutes: int = 30

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
