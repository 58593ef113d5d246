"""
Generic object cache stored in one Redis hash.

Every entry occupies two fields of the namespace hash: the value's JSON
text under `key`, and its shape tag under `key:type`. Both fields are
written by a single HSET and read by a single HMGET, so a reader never
sees one half of a write.
"""

from typing import Any, Optional

from hashcache.cache.cache_keys import CacheKeys
from hashcache.cache.connection import ConnectionSource, RedisPool
from hashcache.cache.shapes import ShapeRegistry, decode_text, default_registry
from hashcache.config import Settings, get_settings
from hashcache.exceptions import CacheDecodeError
from hashcache.logging import get_logger

logger = get_logger("cache.generic")


class GenericCacheStore:
    """
    Redis-hash backed cache for arbitrary registered values.

    Usage:
        store = GenericCacheStore(RedisPool.from_settings())

        store.set("sitemap", {"pages": [1, 2, 3]})
        store.get("sitemap")   # {"pages": [1, 2, 3]}
        store.get("missing")   # None

    Values must have a shape in the registry (builtins are registered by
    default; host types are added with `registry.shape(name)`).
    """

    def __init__(
        self,
        pool: ConnectionSource,
        registry: Optional[ShapeRegistry] = None,
        namespace: str = CacheKeys.CACHE_NAMESPACE,
    ):
        self.pool = pool
        self.registry = registry or default_registry
        self.namespace = namespace

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, registry: Optional[ShapeRegistry] = None
    ) -> "GenericCacheStore":
        """Build a store with its own pool from REDIS_* settings."""
        settings = settings or get_settings()
        pool = RedisPool.from_settings(settings)
        return cls(pool, registry=registry, namespace=settings.cache_namespace)

    def remove(self, key: str) -> None:
        """Delete an entry and its shape tag. Absent keys are ignored."""
        with self.pool.connection() as client:
            client.hdel(self.namespace, key, CacheKeys.type_field(key))
        logger.debug("cache_removed", key=key)

    def contains(self, key: str) -> bool:
        """True if a value is stored for key."""
        with self.pool.connection() as client:
            return bool(client.hexists(self.namespace, key))

    def set(self, key: str, value: Any) -> None:
        """
        Store a value, overwriting any previous entry.

        Raises:
            UnknownShapeError: the value's type has no registered shape
        """
        shape, text = self.registry.encode(value)
        fields = {
            key: text,
            CacheKeys.type_field(key): self.registry.encode_tag(shape),
        }
        with self.pool.connection() as client:
            client.hset(self.namespace, mapping=fields)
        logger.debug("cache_set", key=key, shape=shape)

    def get(self, key: str) -> Any:
        """
        Fetch and rebuild a value.

        Returns:
            The cached value, or None on a miss

        Raises:
            CacheDecodeError: the value exists but its shape tag is missing,
                unknown, not UTF-8, or does not match the stored text
        """
        with self.pool.connection() as client:
            raw_text, raw_tag = client.hmget(self.namespace, [key, CacheKeys.type_field(key)])

        if raw_text is None:
            logger.debug("cache_miss", key=key)
            return None

        if raw_tag is None:
            raise CacheDecodeError(
                f"Cached value {key!r} has no shape tag", details={"key": key}
            )

        shape = self.registry.decode_tag(decode_text(raw_tag, "shape tag"))
        value = self.registry.decode(shape, decode_text(raw_text))
        logger.debug("cache_hit", key=key, shape=shape)
        return value

    # =========================================================================
    # Mapping protocol
    # =========================================================================

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def __getitem__(self, key: str) -> Any:
        # get() returns None for both a miss and a cached None.
        if not self.contains(key):
            raise KeyError(key)
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.remove(key)
