"""
Redis Caching Layer.

Provides Redis-hash backed caching with connection pooling for:
- Arbitrary application values (GenericCacheStore)
- Rendered media binaries by id, size and state (MediaCacheStore)

Usage:
    from hashcache.cache import GenericCacheStore, MediaCacheStore, RedisPool

    pool = RedisPool.from_settings()

    objects = GenericCacheStore(pool)
    objects.set("sitemap", {"pages": [1, 2, 3]})

    media = MediaCacheStore(pool)
    media.put(media_id, thumbnail, 100, 100)
"""

from hashcache.cache.cache_keys import CacheKeys, MediaCategory
from hashcache.cache.connection import RedisPool
from hashcache.cache.generic_store import GenericCacheStore
from hashcache.cache.media_store import MediaCacheStore
from hashcache.cache.shapes import ShapeRegistry, default_registry

__all__ = [
    "CacheKeys",
    "MediaCategory",
    "RedisPool",
    "GenericCacheStore",
    "MediaCacheStore",
    "ShapeRegistry",
    "default_registry",
]
