"""
Binary media cache.

Each media item owns one Redis hash per category, and every cached
rendition of it (published or draft, at a given width and height) is a
field inside that hash:

    piranha:media:3f2504e0-4f89-41d3-9a0c-0305e82c3301
        published:100:100 -> "U29tZXRoaW5nIHRlc3RhYmxl"
        draft:100:100     -> "..."
        published:640:    -> "..."    (no height)

Payloads are stored as JSON strings holding standard base64 text.
"""

import base64
import binascii
import json
import uuid
from typing import Optional, Union

from hashcache.cache.cache_keys import CacheKeys, MediaCategory
from hashcache.cache.connection import ConnectionSource, RedisPool
from hashcache.cache.shapes import decode_text
from hashcache.config import Settings
from hashcache.exceptions import CacheDecodeError
from hashcache.logging import LogContext, get_logger, log_timing

logger = get_logger("cache.media")

MediaId = Union[uuid.UUID, str]
BytesLike = Union[bytes, bytearray, memoryview]


def encode_blob(data: BytesLike) -> str:
    """Stored form of a binary payload."""
    return json.dumps(base64.b64encode(bytes(data)).decode("ascii"))


def decode_blob(raw: Union[str, bytes]) -> bytes:
    """
    Rebuild a binary payload from its stored form.

    Raises:
        CacheDecodeError: raw is not UTF-8 text of a JSON base64 string
    """
    text = decode_text(raw, "cached media")
    try:
        encoded = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise CacheDecodeError("Cached media is not valid JSON") from e
    if not isinstance(encoded, str):
        raise CacheDecodeError("Cached media is not a base64 string")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CacheDecodeError("Cached media is not valid base64") from e


def _check_dimensions(width: int, height: Optional[int]) -> None:
    if isinstance(width, bool) or not isinstance(width, int) or width <= 0:
        raise ValueError(f"width must be a positive integer (got {width!r})")
    if height is not None and (isinstance(height, bool) or not isinstance(height, int) or height <= 0):
        raise ValueError(f"height must be a positive integer or None (got {height!r})")


class MediaCacheStore:
    """
    Redis-hash backed cache for rendered media binaries.

    Usage:
        store = MediaCacheStore(RedisPool.from_settings())

        store.put(media_id, png_bytes, 100, 100)
        store.get(media_id, 100, 100)          # png_bytes
        store.get_draft(media_id, 100, 100)    # None
        store.delete(media_id)                 # drops every variant
    """

    def __init__(self, pool: ConnectionSource):
        self.pool = pool

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MediaCacheStore":
        """Build a store with its own pool from REDIS_* settings."""
        return cls(RedisPool.from_settings(settings))

    # =========================================================================
    # Reads
    # =========================================================================

    def get(
        self,
        media_id: MediaId,
        width: int,
        height: Optional[int] = None,
        category: MediaCategory = MediaCategory.MEDIA,
    ) -> Optional[bytes]:
        """
        Gets the published data for the cached image with the given dimensions.

        Returns:
            The binary data, None in case of a cache miss
        """
        return self._read(media_id, width, height, category, draft=False)

    def get_draft(
        self,
        media_id: MediaId,
        width: int,
        height: Optional[int] = None,
        category: MediaCategory = MediaCategory.MEDIA,
    ) -> Optional[bytes]:
        """
        Gets the draft data for the cached image with the given dimensions.

        Returns:
            The binary data, None in case of a cache miss
        """
        return self._read(media_id, width, height, category, draft=True)

    @log_timing("media_total_size")
    def get_total_size(
        self, media_id: MediaId, category: MediaCategory = MediaCategory.MEDIA
    ) -> int:
        """
        Total size in bytes of every cached variant of a media item.

        Best-effort: entries that cannot be decoded count as zero bytes
        instead of failing the whole call.
        """
        hash_key = CacheKeys.media_hash(media_id, category)

        with self.pool.connection() as client:
            entries = client.hgetall(hash_key)

        size = 0
        with LogContext(hash_key=hash_key):
            for field, raw in entries.items():
                try:
                    size += len(decode_blob(raw))
                except CacheDecodeError as e:
                    logger.debug("media_entry_undecodable", field=field, error=e.message)
        return size

    # =========================================================================
    # Writes
    # =========================================================================

    def put(
        self,
        media_id: MediaId,
        data: BytesLike,
        width: int,
        height: Optional[int] = None,
        category: MediaCategory = MediaCategory.MEDIA,
    ) -> None:
        """Stores the published data for the image, replacing any cached copy."""
        self._write(media_id, data, width, height, category, draft=False)

    def put_draft(
        self,
        media_id: MediaId,
        data: BytesLike,
        width: int,
        height: Optional[int] = None,
        category: MediaCategory = MediaCategory.MEDIA,
    ) -> None:
        """Stores the draft data for the image, replacing any cached copy."""
        self._write(media_id, data, width, height, category, draft=True)

    def delete(self, media_id: MediaId, category: MediaCategory = MediaCategory.MEDIA) -> None:
        """Deletes all cached images for the id, both draft and published."""
        hash_key = CacheKeys.media_hash(media_id, category)

        with self.pool.connection() as client:
            client.delete(hash_key)
        logger.info("media_deleted", hash_key=hash_key)

    # =========================================================================
    # Internals
    # =========================================================================

    def _read(
        self,
        media_id: MediaId,
        width: int,
        height: Optional[int],
        category: MediaCategory,
        draft: bool,
    ) -> Optional[bytes]:
        _check_dimensions(width, height)
        hash_key = CacheKeys.media_hash(media_id, category)
        item_key = CacheKeys.media_item(width, height, draft)

        with self.pool.connection() as client:
            raw = client.hget(hash_key, item_key)

        if raw is None:
            logger.debug("media_miss", hash_key=hash_key, item_key=item_key)
            return None
        return decode_blob(raw)

    def _write(
        self,
        media_id: MediaId,
        data: BytesLike,
        width: int,
        height: Optional[int],
        category: MediaCategory,
        draft: bool,
    ) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"data must be bytes-like, not {type(data).__name__}")
        _check_dimensions(width, height)
        hash_key = CacheKeys.media_hash(media_id, category)
        item_key = CacheKeys.media_item(width, height, draft)
        blob = bytes(data)
        payload = encode_blob(blob)

        with self.pool.connection() as client:
            client.hset(hash_key, item_key, payload)
        logger.debug("media_put", hash_key=hash_key, item_key=item_key, size=len(blob))
