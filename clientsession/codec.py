"""
ClientSession - Session codec.

Turns a set of session entries into a signed, optionally encrypted
envelope that fits in one or more cookies, and back:

    serialize:   entries -> flat payload -> [encrypt] -> base64url
                 -> sign -> "<payload>:<digest>" -> [partition]
    deserialize: fragments -> join -> split ":" -> base64url decode
                 -> verify -> [decrypt] -> parse -> decode values

The codec holds only references to its collaborators. It keeps no
per-call state on the instance, so one codec may be shared by every
request-handling thread.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Mapping
from contextlib import ExitStack
from typing import Any, Callable, Iterable, Union

from .crypto import Crypto
from .data import SessionData
from .escaping import assemble_payload, escape_key, parse_payload
from .faults import CodecFailure, SessionTamperedFault
from .signing import Signer, constant_time_equals
from .values import JsonValueSerializer, ValueSerializer


SESSION_SEPARATOR = ":"
DEFAULT_MAX_COOKIE_SIZE = 1932

Entries = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]
Fragments = Union[str, Iterable[Union[str, None]], None]


# ============================================================================
# Helpers
# ============================================================================

def b64url_encode(data: bytes) -> str:
    """URL-safe base64 encode (padding kept)."""
    return base64.urlsafe_b64encode(data).decode("ascii")


def b64url_decode(data: str) -> bytes:
    """
    URL-safe base64 decode.

    Stripped padding is restored. Only the canonical encoding of the
    decoded bytes is accepted: ``+``, ``/``, other characters outside the
    base64url alphabet and non-zero unused trailing bits raise
    ``binascii.Error``.
    """
    padding = -len(data) % 4
    raw = base64.b64decode(
        data.encode("ascii") + b"=" * padding, altchars=b"-_", validate=True
    )
    if b64url_encode(raw).rstrip("=") != data.rstrip("="):
        raise binascii.Error("Non-canonical base64url encoding")
    return raw


def partition(envelope: str, max_cookie_size: int) -> list[str]:
    """
    Split an envelope into consecutive chunks of at most max_cookie_size
    characters. The last chunk holds the remainder.

    Raises:
        ValueError: If max_cookie_size is less than 1
    """
    if max_cookie_size < 1:
        raise ValueError(f"max_cookie_size must be >= 1, got {max_cookie_size}")
    if len(envelope) <= max_cookie_size:
        return [envelope]
    return [
        envelope[start:start + max_cookie_size]
        for start in range(0, len(envelope), max_cookie_size)
    ]


def _iter_entries(entries: Entries) -> Iterable[tuple[str, Any]]:
    if isinstance(entries, Mapping):
        return entries.items()
    return entries


def _join_fragments(fragments: Fragments) -> str:
    if fragments is None:
        return ""
    if isinstance(fragments, str):
        return fragments
    # Caller order is trusted; no reordering
    return "".join(fragment for fragment in fragments if fragment)


# ============================================================================
# SessionCodec
# ============================================================================

class SessionCodec:
    """
    Client-side session codec.

    Example:
        >>> codec = SessionCodec(signer=HmacSigner("a-long-random-secret-token"))
        >>> envelope = codec.serialize(None, {"user": "alice", "role": "admin"})
        >>> codec.deserialize(None, envelope)
        SessionData({'user': 'alice', 'role': 'admin'})

    Args:
        signer: Produces and verifies the envelope digest
        crypto: Optional cipher for the payload
        value_serializer: Serializes single values (JSON by default)
        logger: Optional logger
        on_invalid: Optional callback receiving a ``SessionTamperedFault``
            whenever a malformed or tampered envelope is discarded
        max_cookie_size: Default per-cookie character limit for
            ``serialize_partitions``
    """

    __slots__ = ("_signer", "_crypto", "_value_serializer", "_logger", "_on_invalid",
                 "_max_cookie_size")

    def __init__(
        self,
        signer: Signer,
        crypto: Crypto | None = None,
        value_serializer: ValueSerializer | None = None,
        *,
        logger: logging.Logger | None = None,
        on_invalid: Callable[[SessionTamperedFault], None] | None = None,
        max_cookie_size: int = DEFAULT_MAX_COOKIE_SIZE,
    ):
        if signer is None:
            raise ValueError("SessionCodec requires a signer")
        if max_cookie_size < 1:
            raise ValueError(f"max_cookie_size must be >= 1, got {max_cookie_size}")
        self._signer = signer
        self._crypto = crypto
        self._value_serializer = value_serializer or JsonValueSerializer()
        self._logger = logger or logging.getLogger("clientsession.codec")
        self._on_invalid = on_invalid
        self._max_cookie_size = max_cookie_size

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def crypto(self) -> Crypto | None:
        return self._crypto

    @property
    def value_serializer(self) -> ValueSerializer:
        return self._value_serializer

    @property
    def max_cookie_size(self) -> int:
        return self._max_cookie_size

    @property
    def encrypted(self) -> bool:
        return self._crypto is not None

    # ========================================================================
    # Serialize
    # ========================================================================

    def serialize(
        self,
        context: Any,
        entries: Entries,
        max_cookie_size: int | None = None,
    ) -> str | list[str]:
        """
        Encode session entries into an envelope.

        Args:
            context: Passed unchanged to the value serializer
            entries: Mapping or iterable of (key, value) pairs
            max_cookie_size: Optional per-cookie character limit

        Returns:
            The envelope string when no limit is given, otherwise the
            ordered list of partitions (a single element when it fits)

        Raises:
            ValueError: If max_cookie_size is less than 1
            CodecFailure: If escaping, value serialization, encryption or
                signing fails
        """
        if max_cookie_size is not None and max_cookie_size < 1:
            raise ValueError(f"max_cookie_size must be >= 1, got {max_cookie_size}")

        envelope = self._encode(context, entries)
        if max_cookie_size is None:
            return envelope

        partitions = partition(envelope, max_cookie_size)
        if len(partitions) > 1:
            self._logger.debug(
                "Session envelope of %d chars split into %d partitions (max %d)",
                len(envelope), len(partitions), max_cookie_size,
            )
        return partitions

    def serialize_partitions(
        self,
        context: Any,
        entries: Entries,
        max_cookie_size: int | None = None,
    ) -> list[str]:
        """
        Encode session entries, always returning a list of partitions.

        The codec's own max_cookie_size is used when none is given.
        """
        if max_cookie_size is None:
            max_cookie_size = self._max_cookie_size
        return self.serialize(context, entries, max_cookie_size)

    def _encode(self, context: Any, entries: Entries) -> str:
        with ExitStack() as scope:
            buffers: list[tuple[bytes, bytes]] = []
            scope.callback(buffers.clear)
            try:
                for key, value in _iter_entries(entries):
                    buffers.append((
                        escape_key(key),
                        bytes(self._value_serializer.serialize(context, value)),
                    ))

                payload = assemble_payload(buffers)
                if self._crypto is not None:
                    payload = bytes(self._crypto.encrypt(payload))

                digest = bytes(self._signer.sign(payload))
                return b64url_encode(payload) + SESSION_SEPARATOR + b64url_encode(digest)

            except CodecFailure:
                raise
            except Exception as exc:
                raise CodecFailure("serialize", exc) from exc

    # ========================================================================
    # Deserialize
    # ========================================================================

    def deserialize(self, context: Any, fragments: Fragments) -> SessionData:
        """
        Decode cookie fragments back into session data.

        Fragments are concatenated in the order given. A missing, malformed
        or tampered envelope yields an empty ``SessionData``.

        Args:
            context: Passed unchanged to the value serializer
            fragments: None, an envelope string, or ordered partitions

        Returns:
            Session data (empty when no valid session is present)

        Raises:
            CodecFailure: If signing fails, or if decryption, payload
                parsing or value deserialization fails after the digest
                has been verified
        """
        envelope = _join_fragments(fragments)
        if not envelope:
            return SessionData()

        parts = envelope.split(SESSION_SEPARATOR)
        if len(parts) != 2:
            return self._reject(f"expected 2 envelope parts, got {len(parts)}")

        try:
            candidate_payload = b64url_decode(parts[0])
            candidate_digest = b64url_decode(parts[1])
        except (binascii.Error, ValueError):
            return self._reject("envelope is not valid base64url")

        try:
            expected_digest = bytes(self._signer.sign(candidate_payload))
        except CodecFailure:
            raise
        except Exception as exc:
            raise CodecFailure("deserialize", exc) from exc

        if not constant_time_equals(candidate_digest, expected_digest):
            return self._reject("digest mismatch")

        with ExitStack() as scope:
            decoded: dict[str, Any] = {}
            scope.callback(decoded.clear)
            try:
                if self._crypto is not None:
                    plaintext = bytes(self._crypto.decrypt(candidate_payload))
                else:
                    plaintext = candidate_payload

                for key, raw_value in parse_payload(plaintext).items():
                    decoded[key] = self._value_serializer.deserialize(
                        context, raw_value.encode("utf-8")
                    )

                return SessionData(decoded)

            except CodecFailure:
                raise
            except Exception as exc:
                raise CodecFailure("deserialize", exc) from exc

    def _reject(self, reason: str) -> SessionData:
        fault = SessionTamperedFault(reason)
        self._logger.warning("Discarding session cookie: %s", reason)
        if self._on_invalid is not None:
            self._on_invalid(fault)
        return SessionData()

    def __repr__(self) -> str:
        return (
            f"SessionCodec(signer={self._signer!r}, encrypted={self.encrypted}, "
            f"value_serializer={type(self._value_serializer).__name__})"
        )
