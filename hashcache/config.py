"""
Cache configuration using Pydantic settings.

Usage:
    from hashcache.config import get_settings
    settings = get_settings()

Environment:
    REDIS_URL           Connection string, e.g. redis://localhost:6379/0 (required)
    REDIS_POOL_SIZE     Maximum pooled connections (default 1000)
    REDIS_POOL_TIMEOUT  Seconds to wait for a free connection (default 1.0)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Cache settings loaded from environment variables and .env file.

    Only REDIS_URL is required, and only when a pool is built from
    settings. An empty value is reported by RedisPool.from_settings.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Redis
    redis_url: str = Field(default="", validation_alias="REDIS_URL")
    redis_pool_size: int = Field(default=1000, validation_alias="REDIS_POOL_SIZE")
    redis_pool_timeout: float = Field(default=1.0, validation_alias="REDIS_POOL_TIMEOUT")
    redis_socket_timeout: float = Field(default=5.0, validation_alias="REDIS_SOCKET_TIMEOUT")

    # Keyspace
    cache_namespace: str = Field(default="piranha:cache", validation_alias="CACHE_NAMESPACE")

    @field_validator("redis_url")
    @classmethod
    def strip_redis_url(cls, v: str) -> str:
        return v.strip()

    @field_validator("redis_pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"REDIS_POOL_SIZE must be positive (got {v})")
        return v

    @field_validator("redis_pool_timeout", "redis_socket_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Redis timeouts must be positive (got {v})")
        return v

    @field_validator("cache_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("CACHE_NAMESPACE cannot be empty")
        return v.strip()


@lru_cache
def get_settings() -> Settings:
    """Get cached cache settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]
