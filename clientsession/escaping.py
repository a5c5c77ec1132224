"""
ClientSession - Key escaping and flat payload assembly.

The flat payload is the canonical form of a session before encryption:

    key1=value1&key2=value2

Keys are form-urlencoded so ``=`` and ``&`` only ever appear as
separators. Value bytes come from the value serializer and are copied
through untouched.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import parse_qsl, quote_plus


EQUALS = b"="
AMPERSAND = b"&"

# Characters left unescaped besides the always-safe ASCII letters, digits and "_.-~"
_KEY_SAFE = "*"


def escape_key(key: str) -> bytes:
    """
    URL-form-escape a session key and encode it as UTF-8 bytes.

    Spaces become ``+``, reserved characters are percent-encoded.

    Raises:
        TypeError: If key is not a string
    """
    if not isinstance(key, str):
        raise TypeError(f"Session keys must be str, got {type(key).__name__}")
    return quote_plus(key, safe=_KEY_SAFE, encoding="utf-8").encode("ascii")


def assemble_payload(pairs: Iterable[tuple[bytes, bytes]]) -> bytes:
    """
    Join (escaped key, value) byte pairs into one flat payload.

    Pairs are interleaved with ``=`` and separated by ``&`` with no
    trailing separator. No pairs gives ``b""``.
    """
    buffer = bytearray()
    for key, value in pairs:
        if buffer:
            buffer += AMPERSAND
        buffer += key
        buffer += EQUALS
        buffer += value
    return bytes(buffer)


def parse_payload(payload: bytes) -> dict[str, str]:
    """
    Parse a flat payload back into key -> raw value text.

    Follows urlencoded-parameter rules: ``&``-delimited pairs,
    ``=``-delimited key and value, percent and ``+`` decoding. Blank
    values are kept. When a key repeats, the first occurrence wins.

    Raises:
        ValueError: If payload is not valid UTF-8
    """
    if not payload:
        return {}

    text = payload.decode("utf-8")
    parsed: dict[str, str] = {}
    for key, value in parse_qsl(text, keep_blank_values=True, errors="strict"):
        parsed.setdefault(key, value)
    return parsed
