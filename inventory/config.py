"""Application configuration."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_env: str = "development"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    database_url: str = "sqlite:///./inventory.db"

    # Redis (read cache, event channels and Celery broker)
    redis_url: str = "redis://localhost:6379/0"

    # Read cache, 0 disables expiry
    cache_entity_ttl_seconds: int = 0
    cache_listing_ttl_seconds: int = 0

    # Catalog
    default_page_size: int = 20
    max_page_size: int = 100
    low_stock_threshold: int = 10
    stock_update_max_retries: int = 3

    # Event channels
    event_stream_prefix: str = ""
    event_partitions: int = 3
    event_retention_ms: int = 24 * 60 * 60 * 1000
    event_retention_bytes: int = 512 * 1024 * 1024
    event_average_message_bytes: int = 2048
    event_trim_approximate: bool = True

    # Outbox relay
    outbox_relay_inline: bool = True
    outbox_relay_batch_size: int = 100
    outbox_relay_interval_seconds: float = 5.0

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
