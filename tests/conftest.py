"""
Pytest fixtures for hashcache tests.

Stores are exercised against an in-memory Redis hash fake, injected
through a pool object exposing the same connection() scope as RedisPool.
"""

import uuid
from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel

from hashcache.cache import GenericCacheStore, MediaCacheStore, ShapeRegistry


def _b(value):
    """Encode the way redis-py does before sending."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return str(value).encode("utf-8")


class FakeRedis:
    """The subset of redis.Redis the stores use; replies are bytes, as with decode_responses=False."""

    def __init__(self):
        self.hashes: dict[str, dict[bytes, bytes]] = {}

    def hset(self, name, key=None, value=None, mapping=None):
        record = self.hashes.setdefault(name, {})
        added = 0
        items = dict(mapping or {})
        if key is not None:
            items[key] = value
        for field, data in items.items():
            field = _b(field)
            added += field not in record
            record[field] = _b(data)
        return added

    def hget(self, name, key):
        return self.hashes.get(name, {}).get(_b(key))

    def hmget(self, name, keys, *args):
        record = self.hashes.get(name, {})
        return [record.get(_b(k)) for k in [*keys, *args]]

    def hexists(self, name, key):
        return _b(key) in self.hashes.get(name, {})

    def hdel(self, name, *keys):
        record = self.hashes.get(name, {})
        removed = sum(1 for k in keys if record.pop(_b(k), None) is not None)
        if name in self.hashes and not record:
            del self.hashes[name]
        return removed

    def hgetall(self, name):
        return dict(self.hashes.get(name, {}))

    def delete(self, *names):
        return sum(1 for n in names if self.hashes.pop(n, None) is not None)

    def ping(self):
        return True


class FakePool:
    """Hands out one shared FakeRedis and counts borrow/return pairs."""

    def __init__(self, client=None):
        self.client = client if client is not None else FakeRedis()
        self.acquired = 0
        self.released = 0

    @contextmanager
    def connection(self):
        self.acquired += 1
        try:
            yield self.client
        finally:
            self.released += 1


class SampleObject(BaseModel):
    index: int


class Page(BaseModel):
    id: int
    title: str
    tags: list[str] = []


@pytest.fixture
def registry():
    """Registry with builtins plus the test models."""
    shapes = ShapeRegistry()
    shapes.register("sample_object", SampleObject)
    shapes.register("page", Page)
    return shapes


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def pool(fake_redis):
    return FakePool(fake_redis)


@pytest.fixture
def mock_client():
    return MagicMock()


@pytest.fixture
def mock_pool(mock_client):
    return FakePool(mock_client)


@pytest.fixture
def generic_store(pool, registry):
    return GenericCacheStore(pool, registry=registry)


@pytest.fixture
def media_store(pool):
    return MediaCacheStore(pool)


@pytest.fixture
def media_id():
    return uuid.UUID("3f2504e0-4f89-41d3-9a0c-0305e82c3301")
