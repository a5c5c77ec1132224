"""
ClientSession - Value serializers.

A value serializer turns one session value into bytes that can sit inside
the flat payload, and back. The codec hands it an opaque context object
untouched; ``JsonValueSerializer`` uses a ``TypeRegistry`` there so that
application types survive the round trip.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Callable, Protocol


TYPE_TAG = "__type__"
TYPE_VALUE = "value"


class ValueSerializer(Protocol):
    """Serializes a single session value."""

    def serialize(self, context: Any, value: Any) -> bytes:
        ...

    def deserialize(self, context: Any, data: bytes) -> Any:
        ...


# ============================================================================
# TypeRegistry
# ============================================================================

@dataclass(frozen=True)
class TypeCodec:
    """How one application type is encoded into JSON-compatible data."""

    tag: str
    type: type
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]


class TypeRegistry:
    """
    Registry of application types that may be stored in a session.

    Example:
        >>> registry = TypeRegistry()
        >>> registry.register(
        ...     "point", Point,
        ...     encode=lambda p: [p.x, p.y],
        ...     decode=lambda data: Point(*data),
        ... )
    """

    def __init__(self) -> None:
        self._by_tag: dict[str, TypeCodec] = {}
        self._by_type: dict[type, TypeCodec] = {}

    def register(
        self,
        tag: str,
        type_: type,
        encode: Callable[[Any], Any],
        decode: Callable[[Any], Any],
    ) -> TypeCodec:
        """
        Register a type under a stable tag.

        Raises:
            ValueError: If the tag or the type is already registered
        """
        if tag in self._by_tag:
            raise ValueError(f"Type tag already registered: {tag}")
        if type_ in self._by_type:
            raise ValueError(f"Type already registered: {type_.__qualname__}")

        codec = TypeCodec(tag=tag, type=type_, encode=encode, decode=decode)
        self._by_tag[tag] = codec
        self._by_type[type_] = codec
        return codec

    def register_type(
        self,
        tag: str,
        encode: Callable[[Any], Any],
        decode: Callable[[Any], Any],
    ) -> Callable[[type], type]:
        """Class decorator form of :meth:`register`."""

        def decorator(cls: type) -> type:
            self.register(tag, cls, encode, decode)
            return cls

        return decorator

    def for_type(self, type_: type) -> TypeCodec | None:
        """Find the codec for a type (exact match first, then base classes)."""
        codec = self._by_type.get(type_)
        if codec is not None:
            return codec
        for base in type_.__mro__[1:]:
            codec = self._by_type.get(base)
            if codec is not None:
                return codec
        return None

    def for_tag(self, tag: str) -> TypeCodec | None:
        return self._by_tag.get(tag)

    def __contains__(self, tag: str) -> bool:
        return tag in self._by_tag

    def __len__(self) -> int:
        return len(self._by_tag)


_EMPTY_REGISTRY = TypeRegistry()


# ============================================================================
# JsonValueSerializer
# ============================================================================

class JsonValueSerializer:
    """
    JSON value serializer.

    Each value is dumped as compact JSON and then base64url-encoded, so the
    resulting bytes never contain ``&``, ``+`` or ``%``. Trailing ``=``
    padding is harmless: pairs are split on their first ``=``.

    Registered types are written as ``{"__type__": tag, "value": data}``.
    """

    def serialize(self, context: Any, value: Any) -> bytes:
        registry = self._registry(context)

        def default(obj: Any) -> Any:
            codec = registry.for_type(type(obj))
            if codec is None:
                raise TypeError(
                    f"Object of type {type(obj).__name__} is not JSON serializable "
                    f"and has no registered session codec"
                )
            return {TYPE_TAG: codec.tag, TYPE_VALUE: codec.encode(obj)}

        text = json.dumps(value, default=default, separators=(",", ":"), ensure_ascii=False)
        return base64.urlsafe_b64encode(text.encode("utf-8"))

    def deserialize(self, context: Any, data: bytes) -> Any:
        registry = self._registry(context)

        def object_hook(obj: dict) -> Any:
            if TYPE_TAG in obj and len(obj) == 2 and TYPE_VALUE in obj:
                codec = registry.for_tag(obj[TYPE_TAG])
                if codec is None:
                    raise ValueError(f"Unknown session value type tag: {obj[TYPE_TAG]}")
                return codec.decode(obj[TYPE_VALUE])
            return obj

        try:
            raw = base64.urlsafe_b64decode(bytes(data))
        except binascii.Error as exc:
            raise ValueError(f"Session value is not valid base64url: {exc}") from exc
        return json.loads(raw.decode("utf-8"), object_hook=object_hook)

    @staticmethod
    def _registry(context: Any) -> TypeRegistry:
        if isinstance(context, TypeRegistry):
            return context
        return _EMPTY_REGISTRY
