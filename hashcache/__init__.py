"""
hashcache: object and media caches on Redis hashes.

Usage:
    # Stores
    from hashcache.cache import GenericCacheStore, MediaCacheStore, RedisPool

    # Config
    from hashcache.config import get_settings, Settings

    # Logging
    from hashcache.logging import get_logger, configure_logging
"""

__version__ = "1.0.0"
