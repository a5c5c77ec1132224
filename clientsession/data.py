"""
ClientSession - Session data container.

``SessionData`` is what ``SessionCodec.deserialize`` hands back. Request
handling code may read and write it from several threads over the life of
one request, so every operation takes the instance lock.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, MutableMapping
from typing import Any, Iterator


class SessionData(MutableMapping):
    """
    Thread-safe mapping of session key -> value.

    Example:
        >>> data = SessionData({"user": "alice"})
        >>> data["role"] = "admin"
        >>> data.is_dirty
        True
        >>> data.to_dict()
        {'user': 'alice', 'role': 'admin'}
    """

    __slots__ = ("_data", "_lock", "_dirty")

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})
        self._lock = threading.RLock()
        self._dirty = False

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._dirty = True

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._data[key]
            self._dirty = True

    def __iter__(self) -> Iterator[str]:
        # Iterate over a snapshot so concurrent writers cannot break iteration
        with self._lock:
            keys = list(self._data)
        return iter(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SessionData):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == dict(other)
        return NotImplemented

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"SessionData({self.to_dict()!r})"

    @property
    def is_dirty(self) -> bool:
        """Has the data been modified since it was decoded?"""
        return self._dirty

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set data value (explicit, marks dirty)."""
        self[key] = value

    def delete(self, key: str) -> None:
        """Delete data key if present (marks dirty)."""
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._dirty = True

    def setdefault(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                self._data[key] = default
                self._dirty = True
            return self._data[key]

    def pop(self, key: str, *default: Any) -> Any:
        with self._lock:
            if key in self._data:
                self._dirty = True
            return self._data.pop(key, *default)

    def clear_data(self) -> None:
        """Clear all session data (marks dirty)."""
        with self._lock:
            self._data.clear()
            self._dirty = True

    def to_dict(self) -> dict[str, Any]:
        """Return a snapshot copy of the data."""
        with self._lock:
            return dict(self._data)
