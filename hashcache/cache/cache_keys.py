"""
Cache key management.

Centralized key definitions for both stores. These strings are the
addressable keyspace shared with other clients of the same Redis, so
every builder must be reproduced exactly.
"""

import uuid
from enum import Enum
from typing import Optional, Union

from hashcache.exceptions import InvalidMediaCategoryError


class MediaCategory(str, Enum):
    """Logical media store a binary belongs to."""

    MEDIA = "media"
    UPLOAD = "upload"


class CacheKeys:
    """
    Centralized cache key definitions.

    Naming convention: {root}:{store}:{id}

    Examples:
        - piranha:cache -> Generic object cache hash
        - piranha:cache / page:42:type -> Shape tag for field "page:42"
        - piranha:media:3f2504e0-... -> Every variant of one media item
        - published:100:100 -> One variant field inside a media hash
    """

    ROOT = "piranha"

    # Generic object cache
    CACHE_NAMESPACE = f"{ROOT}:cache"
    TYPE_SUFFIX = ":type"

    # Media hash prefixes
    MEDIA_PREFIXES = {
        MediaCategory.MEDIA: f"{ROOT}:media",
        MediaCategory.UPLOAD: f"{ROOT}:upload",
    }

    # Lifecycle states
    STATE_PUBLISHED = "published"
    STATE_DRAFT = "draft"

    @staticmethod
    def type_field(key: str) -> str:
        """Field holding the shape tag for a generic cache entry."""
        return f"{key}{CacheKeys.TYPE_SUFFIX}"

    @staticmethod
    def media_hash(media_id: Union[uuid.UUID, str], category: MediaCategory) -> str:
        """Hash record holding every variant of one media item."""
        try:
            prefix = CacheKeys.MEDIA_PREFIXES[MediaCategory(category)]
        except (KeyError, ValueError):
            raise InvalidMediaCategoryError(
                f"Unknown media category {category!r}",
                details={"category": str(category)},
            ) from None
        return f"{prefix}:{CacheKeys.media_id(media_id)}"

    @staticmethod
    def media_item(width: int, height: Optional[int], draft: bool = False) -> str:
        """Field for one variant; a missing height renders as an empty segment."""
        state = CacheKeys.STATE_DRAFT if draft else CacheKeys.STATE_PUBLISHED
        return f"{state}:{width}:{'' if height is None else height}"

    @staticmethod
    def media_id(media_id: Union[uuid.UUID, str]) -> str:
        """Canonical lower-case hyphenated form of a media id."""
        if isinstance(media_id, uuid.UUID):
            return str(media_id)
        try:
            return str(uuid.UUID(str(media_id)))
        except ValueError:
            raise ValueError(f"Invalid media id {media_id!r}") from None
