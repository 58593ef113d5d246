"""
Shape registry for the generic cache.

A generic cache entry is stored as JSON text plus a shape tag: a stable
name such as "int" or "page" that says how to rebuild the value. Names are
resolved through a registry the host application fills in, so cached
values never depend on Python import paths.

Usage:
    from pydantic import BaseModel
    from hashcache.cache import default_registry

    @default_registry.shape("page")
    class Page(BaseModel):
        id: int
        title: str

    tag, text = default_registry.encode(Page(id=1, title="Home"))
    # tag == "page", text == '{"id":1,"title":"Home"}'
    page = default_registry.decode(tag, text)
"""

import datetime
import decimal
import json
import threading
import uuid
from collections.abc import Callable
from typing import Any, Optional, TypeVar

from pydantic import ConfigDict, TypeAdapter, ValidationError

from hashcache.exceptions import CacheDecodeError, UnknownShapeError

T = TypeVar("T")

BYTES_CONFIG = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")
FLOAT_CONFIG = ConfigDict(ser_json_inf_nan="constants")

JSON_SCALARS = (type(None), bool, int, float, str)
CONTAINER_TYPES = (list, tuple, set, dict)

BUILTIN_SHAPES: list[tuple[str, Any]] = [
    ("null", type(None)),
    ("bool", bool),
    ("int", int),
    ("float", float),
    ("str", str),
    ("bytes", bytes),
    ("list", list),
    ("tuple", tuple),
    ("set", set),
    ("dict", dict),
    ("datetime", datetime.datetime),
    ("date", datetime.date),
    ("uuid", uuid.UUID),
    ("decimal", decimal.Decimal),
]

BUILTIN_CONFIGS: dict[Any, ConfigDict] = {
    bytes: BYTES_CONFIG,
    float: FLOAT_CONFIG,
    list: FLOAT_CONFIG,
    tuple: FLOAT_CONFIG,
    set: FLOAT_CONFIG,
    dict: FLOAT_CONFIG,
}


def decode_text(raw: Any, what: str = "cached value") -> str:
    """
    Text form of a raw Redis reply.

    Raises:
        CacheDecodeError: the reply is not valid UTF-8
    """
    if isinstance(raw, str):
        return raw
    try:
        return bytes(raw).decode("utf-8")
    except UnicodeDecodeError as e:
        raise CacheDecodeError(f"{what.capitalize()} is not valid UTF-8") from e


def _check_json_native(value: Any, path: str) -> None:
    """Reject container contents that would not come back with the same type."""
    kind = type(value)
    if kind in JSON_SCALARS:
        return
    if kind is list:
        for index, item in enumerate(value):
            _check_json_native(item, f"{path}[{index}]")
        return
    if kind is dict:
        for key, item in value.items():
            if type(key) is not str:
                raise UnknownShapeError(
                    f"{path} has a non-string key {key!r}", details={"path": path}
                )
            _check_json_native(item, f"{path}[{key!r}]")
        return
    raise UnknownShapeError(
        f"{path} holds a {kind.__qualname__}, which a container shape cannot rebuild",
        details={"path": path, "type": kind.__qualname__},
    )


class ShapeRegistry:
    """
    Maps shape names to Python types and (de)serializes values with pydantic.

    Any type pydantic can validate works as a shape: BaseModel subclasses,
    dataclasses, TypedDicts and plain builtins. Only exact types resolve;
    a subclass needs its own registration. The container shapes (list,
    tuple, set, dict) only accept JSON-native contents.
    """

    def __init__(self, include_builtins: bool = True):
        self._lock = threading.Lock()
        self._types: dict[str, Any] = {}
        self._names: dict[Any, str] = {}
        self._adapters: dict[str, TypeAdapter] = {}

        if include_builtins:
            for name, shape_type in BUILTIN_SHAPES:
                self.register(name, shape_type, config=BUILTIN_CONFIGS.get(shape_type))

    def register(self, name: str, shape_type: Any, config: Optional[ConfigDict] = None) -> Any:
        """
        Register a shape under a stable name.

        Raises:
            ValueError: name is empty, or name or type is already registered
        """
        if not name or not name.strip():
            raise ValueError("Shape name cannot be empty")

        with self._lock:
            if name in self._types:
                raise ValueError(f"Shape name {name!r} is already registered")
            if shape_type in self._names:
                raise ValueError(
                    f"{shape_type!r} is already registered as {self._names[shape_type]!r}"
                )
            adapter = TypeAdapter(shape_type, config=config) if config else TypeAdapter(shape_type)
            self._types[name] = shape_type
            self._names[shape_type] = name
            self._adapters[name] = adapter

        return shape_type

    def shape(self, name: str) -> Callable[[type[T]], type[T]]:
        """Class decorator form of register()."""

        def decorator(cls: type[T]) -> type[T]:
            self.register(name, cls)
            return cls

        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def names(self) -> list[str]:
        return list(self._types)

    def type_for(self, name: str) -> Any:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownShapeError(
                f"Unknown shape {name!r}", details={"shape": name}
            ) from None

    def name_for(self, value_type: type) -> str:
        """Shape name registered for exactly this type."""
        name = self._names.get(value_type)
        if name is None:
            raise UnknownShapeError(
                f"No shape registered for {value_type.__module__}.{value_type.__qualname__}",
                details={"type": value_type.__qualname__},
            )
        return name

    # =========================================================================
    # Encoding
    # =========================================================================

    def encode(self, value: Any) -> tuple[str, str]:
        """
        Return (shape name, JSON text) for a value.

        Raises:
            UnknownShapeError: the type is not registered, or a container
                holds values that would not decode to the same type
        """
        name = self.name_for(type(value))
        if self._types[name] in CONTAINER_TYPES:
            if isinstance(value, dict):
                _check_json_native(value, "value")
            else:
                for index, item in enumerate(value):
                    _check_json_native(item, f"value[{index}]")
        text = self._adapters[name].dump_json(value).decode("utf-8")
        return name, text

    def decode(self, name: str, text: str) -> Any:
        """Rebuild a value from its shape name and JSON text."""
        adapter = self._adapters.get(name)
        if adapter is None:
            raise UnknownShapeError(f"Unknown shape {name!r}", details={"shape": name})
        try:
            return adapter.validate_json(text)
        except ValidationError as e:
            raise CacheDecodeError(
                f"Cannot decode cached value as {name!r}",
                details={"shape": name, "errors": e.error_count()},
            ) from e

    @staticmethod
    def encode_tag(name: str) -> str:
        """Stored form of a shape tag (a JSON string)."""
        return json.dumps(name)

    @staticmethod
    def decode_tag(text: str) -> str:
        try:
            name = json.loads(text)
        except json.JSONDecodeError as e:
            raise CacheDecodeError(f"Corrupt shape tag {text!r}") from e
        if not isinstance(name, str):
            raise CacheDecodeError(f"Corrupt shape tag {text!r}")
        return name


default_registry = ShapeRegistry()
