"""
Exception hierarchy for hashcache.

Usage:
    from hashcache.exceptions import CacheDecodeError

    try:
        value = store.get("page:42")
    except CacheDecodeError as e:
        logger.error("cache_entry_corrupt", key="page:42", code=e.code)
"""

from typing import Any


class CacheError(Exception):
    """Base exception for all hashcache errors."""

    code: str = "CACHE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CacheError):
    """Missing or invalid connection settings (REDIS_URL, pool limits)."""

    code: str = "CONFIGURATION_ERROR"


class CacheConnectionError(CacheError):
    """Pool exhausted, endpoint unreachable or socket timeout."""

    code: str = "CONNECTION_ERROR"


class CacheDecodeError(CacheError):
    """A stored entry exists but cannot be reconstructed."""

    code: str = "DECODE_ERROR"


class UnknownShapeError(CacheDecodeError):
    """Shape discriminator or value type is not registered."""

    code: str = "UNKNOWN_SHAPE"


class InvalidMediaCategoryError(CacheError, ValueError):
    """Media category has no hash-key prefix."""

    code: str = "INVALID_MEDIA_CATEGORY"


__all__ = [
    "CacheError",
    "ConfigurationError",
    "CacheConnectionError",
    "CacheDecodeError",
    "UnknownShapeError",
    "InvalidMediaCategoryError",
]
