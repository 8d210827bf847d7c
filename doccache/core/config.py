"""
doccache Configuration

Configuration management with environment variable support.
Semantic checks (floors, positivity) run when the cache is built so that
misconfiguration fails fast with InvalidConfigurationError.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.cache.value_objects import RefreshVisibility

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Cache settings read from ``DOCCACHE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DOCCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    STORE_URL: str = Field(
        default="redis://localhost:6379/0", description="Document store connection URL"
    )
    INDEX_NAME: str = Field(
        default="doccache", description="Index holding the cache documents"
    )
    STORE_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=100, description="Store connection pool size"
    )
    STORE_CONNECTION_TIMEOUT: float = Field(
        default=5.0, gt=0, description="Store connect timeout in seconds"
    )
    STORE_OPERATION_TIMEOUT: float = Field(
        default=5.0, gt=0, description="Store operation timeout in seconds"
    )
    STORE_REPLICAS: int = Field(
        default=0, ge=0, description="Replicas that must acknowledge visible writes"
    )
    STORE_REPLICA_TIMEOUT_MS: int = Field(
        default=1000, ge=0, description="Replica acknowledgement timeout in milliseconds"
    )

    # Expiration
    DEFAULT_SLIDING_EXPIRATION_SECONDS: float = Field(
        default=1200.0,
        description="Sliding window applied when a write sets no expiration",
    )
    EXPIRED_ITEMS_DELETION_INTERVAL_SECONDS: Optional[float] = Field(
        default=None,
        description="Interval between sweeps of expired entries (default 30 minutes)",
    )
    REFRESH: RefreshVisibility = Field(
        default=RefreshVisibility.NONE,
        description="Write visibility: immediate, deferred or none",
    )

    # Payload compression
    COMPRESS: bool = Field(default=False, description="Gzip large payloads")
    MIN_LENGTH_COMPRESS: int = Field(
        default=1024, ge=0, description="Smallest payload size that gets compressed"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_JSON: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("REFRESH", mode="before")
    @classmethod
    def normalize_refresh(cls, v):
        """Accept the refresh mode case-insensitively, and the store's own aliases."""
        if isinstance(v, str):
            value = v.strip().lower()
            aliases = {"true": "immediate", "wait_for": "deferred", "false": "none"}
            return aliases.get(value, value)
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
