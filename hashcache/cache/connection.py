"""
Redis connection pooling.

Provides a pool handle that both stores share, with:
- A blocking pool bounded by max connections and an acquisition timeout
- A connection() scope holding exactly one connection per operation
- Translation of redis connection failures to CacheConnectionError
- Fail-fast construction when REDIS_URL is missing
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional, Protocol
from urllib.parse import urlsplit, urlunsplit

import redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from hashcache.config import Settings, get_settings
from hashcache.exceptions import CacheConnectionError, ConfigurationError
from hashcache.logging import get_logger

logger = get_logger("cache.connection")

DEFAULT_POOL_SIZE = 1000
DEFAULT_POOL_TIMEOUT = 1.0


class ConnectionSource(Protocol):
    """Anything the stores can borrow a Redis connection from."""

    def connection(self) -> Any:  # pragma: no cover - protocol
        ...


class RedisPool:
    """
    Pooled Redis connections for the cache stores.

    Usage:
        pool = RedisPool.from_settings()

        with pool.connection() as client:
            client.hget("piranha:cache", "page:42")

    The connection is returned to the pool when the block exits, whether it
    exits normally or with an exception. When every connection is in use,
    connection() waits up to `timeout` seconds and then raises
    CacheConnectionError.
    """

    def __init__(
        self,
        url: str,
        max_connections: int = DEFAULT_POOL_SIZE,
        timeout: float = DEFAULT_POOL_TIMEOUT,
        socket_timeout: Optional[float] = 5.0,
    ):
        if not url or not url.strip():
            raise ConfigurationError("Must provide a valid redis url")
        if max_connections <= 0:
            raise ConfigurationError(
                "Pool size must be positive", details={"max_connections": max_connections}
            )
        if timeout is None or timeout <= 0:
            raise ConfigurationError(
                "Pool timeout must be positive", details={"timeout": timeout}
            )
        if socket_timeout is not None and socket_timeout <= 0:
            raise ConfigurationError(
                "Socket timeout must be positive", details={"socket_timeout": socket_timeout}
            )

        self.url = url.strip()
        self.max_connections = max_connections
        self.timeout = timeout

        try:
            self._pool = redis.BlockingConnectionPool.from_url(
                self.url,
                max_connections=max_connections,
                timeout=timeout,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                decode_responses=False,
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid redis url: {e}", details={"url": self._redacted_url()}
            ) from e

        logger.info(
            "redis_pool_created",
            url=self._redacted_url(),
            max_connections=max_connections,
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RedisPool":
        """
        Build a pool from REDIS_* settings.

        Raises:
            ConfigurationError: REDIS_URL is missing or invalid
        """
        settings = settings or get_settings()
        if not settings.redis_url:
            raise ConfigurationError("REDIS_URL is not set", details={"setting": "REDIS_URL"})
        return cls(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            timeout=settings.redis_pool_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )

    @contextmanager
    def connection(self) -> Iterator[redis.Redis]:
        """Borrow one connection for a single unit of work."""
        client: Optional[redis.Redis] = None
        try:
            client = redis.Redis(connection_pool=self._pool, single_connection_client=True)
            yield client
        except (ConnectionError, TimeoutError) as e:
            logger.warning("redis_connection_failed", error=str(e), error_type=type(e).__name__)
            raise CacheConnectionError(
                f"Redis unavailable: {e}", details={"url": self._redacted_url()}
            ) from e
        finally:
            if client is not None:
                client.close()

    def close(self) -> None:
        """Disconnect every pooled connection."""
        self._pool.disconnect()
        logger.info("redis_pool_closed", url=self._redacted_url())

    # =========================================================================
    # Health Check
    # =========================================================================

    def health_check(self) -> dict[str, Any]:
        """
        Get cache backend health status.

        Returns:
            Dictionary with health information
        """
        status: dict[str, Any] = {
            "url": self._redacted_url(),
            "max_connections": self.max_connections,
        }

        try:
            with self.connection() as client:
                client.ping()
                clients_info = client.info("clients")
        except CacheConnectionError as e:
            status["status"] = "unavailable"
            status["error"] = e.message
            return status
        except RedisError as e:
            status["status"] = "degraded"
            status["error"] = str(e)
            return status

        if isinstance(clients_info, dict):
            status["connected_clients"] = clients_info.get("connected_clients", 0)
        else:
            status["connected_clients"] = 0

        status["status"] = "healthy"
        return status

    def _redacted_url(self) -> str:
        """URL with any password masked, for logs."""
        parts = urlsplit(self.url)
        if parts.password is None:
            return self.url
        host = parts.netloc.rpartition("@")[2]
        return urlunsplit(parts._replace(netloc=f"{parts.username or ''}:***@{host}"))
