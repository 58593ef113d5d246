"""Tests for the generic object cache."""

import math

import pytest

from hashcache.cache import GenericCacheStore
from hashcache.exceptions import CacheDecodeError, UnknownShapeError
from tests.conftest import Page, SampleObject

NAMESPACE = "piranha:cache"


class TestRedisCalls:
    """Exact commands sent for each operation."""

    @pytest.fixture
    def store(self, mock_pool, registry):
        return GenericCacheStore(mock_pool, registry=registry)

    def test_remove_deletes_value_and_tag(self, store, mock_client):
        store.remove("abcdef")

        mock_client.hdel.assert_called_once_with(NAMESPACE, "abcdef", "abcdef:type")

    def test_contains_checks_value_field(self, store, mock_client):
        mock_client.hexists.return_value = True

        assert store.contains("abcdef") is True
        mock_client.hexists.assert_called_once_with(NAMESPACE, "abcdef")

    def test_contains_false(self, store, mock_client):
        mock_client.hexists.return_value = False

        assert store.contains("a;dklf") is False

    def test_set_writes_value_and_tag_together(self, store, mock_client):
        store.set("abcdef", SampleObject(index=1))

        mock_client.hset.assert_called_once_with(
            NAMESPACE,
            mapping={"abcdef": '{"index":1}', "abcdef:type": '"sample_object"'},
        )

    def test_get_reads_value_and_tag_together(self, store, mock_client):
        mock_client.hmget.return_value = ['{"index":1}', '"sample_object"']

        result = store.get("abcdef")

        mock_client.hmget.assert_called_once_with(NAMESPACE, ["abcdef", "abcdef:type"])
        assert isinstance(result, SampleObject)
        assert result.index == 1

    def test_get_miss(self, store, mock_client):
        mock_client.hmget.return_value = [None, None]

        assert store.get("invalid:key") is None

    def test_custom_namespace(self, mock_pool, mock_client):
        store = GenericCacheStore(mock_pool, namespace="site:cache")

        store.remove("k")

        mock_client.hdel.assert_called_once_with("site:cache", "k", "k:type")


class TestRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            42,
            "text",
            [1, 2, 3],
            {"nested": {"list": [1, "a", None]}},
            SampleObject(index=9),
            Page(id=1, title="Home", tags=["start"]),
            b"\x00\x01binary",
        ],
    )
    def test_set_then_get_returns_equal_value(self, generic_store, value):
        generic_store.set("key", value)

        result = generic_store.get("key")

        assert result == value
        assert type(result) is type(value)

    @pytest.mark.parametrize("value", [math.inf, -math.inf, {"limit": math.inf}])
    def test_non_finite_floats(self, generic_store, value):
        generic_store.set("key", value)

        assert generic_store.get("key") == value

    def test_reads_bytes_replies(self, generic_store, fake_redis):
        generic_store.set("key", "caf\u00e9")

        assert fake_redis.hget(NAMESPACE, "key") == '"caf\u00e9"'.encode("utf-8")
        assert generic_store.get("key") == "caf\u00e9"

    def test_overwrite_changes_shape(self, generic_store):
        generic_store.set("key", 1)
        generic_store.set("key", Page(id=2, title="About"))

        assert generic_store.get("key") == Page(id=2, title="About")

    def test_keys_are_independent(self, generic_store):
        generic_store.set("a", 1)
        generic_store.set("b", "two")

        assert generic_store.get("a") == 1
        assert generic_store.get("b") == "two"

    def test_key_containing_type_suffix(self, generic_store):
        generic_store.set("page", 1)
        generic_store.set("page:type:x", 2)

        assert generic_store.get("page") == 1
        assert generic_store.get("page:type:x") == 2


class TestMissSemantics:
    def test_missing_key(self, generic_store):
        assert generic_store.get("missing") is None
        assert generic_store.contains("missing") is False

    def test_stale_type_tag_is_still_a_miss(self, generic_store, fake_redis):
        fake_redis.hset(NAMESPACE, "orphan:type", '"int"')

        assert generic_store.get("orphan") is None
        assert generic_store.contains("orphan") is False

    def test_getitem_raises_key_error(self, generic_store):
        with pytest.raises(KeyError):
            generic_store["missing"]

    def test_cached_none_is_a_hit(self, generic_store):
        generic_store["nothing"] = None

        assert "nothing" in generic_store
        assert generic_store["nothing"] is None


class TestRemoval:
    def test_remove_absent_key_is_noop(self, generic_store):
        generic_store.remove("never-set")
        generic_store.remove("never-set")

        assert generic_store.contains("never-set") is False

    def test_remove_drops_value_and_tag(self, generic_store, fake_redis):
        generic_store.set("key", 1)

        del generic_store["key"]

        assert generic_store.get("key") is None
        assert fake_redis.hgetall(NAMESPACE) == {}


class TestDecodeErrors:
    def test_value_without_tag(self, generic_store, fake_redis):
        fake_redis.hset(NAMESPACE, "half", "1")

        with pytest.raises(CacheDecodeError, match="no shape tag"):
            generic_store.get("half")

    def test_unknown_tag(self, generic_store, fake_redis):
        fake_redis.hset(
            NAMESPACE,
            mapping={
                "legacy": '{"Index":1}',
                "legacy:type": '"Piranha.Models.Page, Piranha"',
            },
        )

        with pytest.raises(UnknownShapeError):
            generic_store.get("legacy")

    def test_value_not_matching_tag(self, generic_store, fake_redis):
        fake_redis.hset(NAMESPACE, mapping={"bad": '"abc"', "bad:type": '"int"'})

        with pytest.raises(CacheDecodeError):
            generic_store.get("bad")

    def test_unregistered_value_is_not_written(self, generic_store, fake_redis):
        class Unregistered:
            pass

        with pytest.raises(UnknownShapeError):
            generic_store.set("key", Unregistered())

        assert fake_redis.hgetall(NAMESPACE) == {}

    def test_unregistered_subclass_is_not_written(self, generic_store, fake_redis):
        class AuthoredPage(Page):
            author: str

        with pytest.raises(UnknownShapeError):
            generic_store.set("key", AuthoredPage(id=1, title="Home", author="ann"))

        assert fake_redis.hgetall(NAMESPACE) == {}

    def test_container_with_non_json_contents_is_not_written(self, generic_store, fake_redis):
        with pytest.raises(UnknownShapeError):
            generic_store.set("key", [(1, 2)])

        assert fake_redis.hgetall(NAMESPACE) == {}

    def test_value_not_utf8(self, generic_store, fake_redis):
        fake_redis.hset(NAMESPACE, mapping={"raw": b"\xff\xfe", "raw:type": '"str"'})

        with pytest.raises(CacheDecodeError, match="not valid UTF-8"):
            generic_store.get("raw")

    def test_tag_not_utf8(self, generic_store, fake_redis):
        fake_redis.hset(NAMESPACE, mapping={"raw": "1", "raw:type": b"\xff\xfe"})

        with pytest.raises(CacheDecodeError, match="Shape tag is not valid UTF-8"):
            generic_store.get("raw")


class TestConnectionScope:
    def test_one_connection_per_operation(self, generic_store, pool):
        generic_store.set("k", 1)
        generic_store.get("k")
        generic_store.contains("k")
        generic_store.remove("k")
        generic_store.get("k")

        assert pool.acquired == 5
        assert pool.released == 5

    def test_released_when_decode_fails(self, generic_store, pool, fake_redis):
        fake_redis.hset(NAMESPACE, "half", "1")

        with pytest.raises(CacheDecodeError):
            generic_store.get("half")

        assert pool.acquired == pool.released == 1

    def test_released_when_store_fails(self, mock_pool, mock_client, registry):
        store = GenericCacheStore(mock_pool, registry=registry)
        mock_client.hexists.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.contains("k")

        assert mock_pool.acquired == mock_pool.released == 1
