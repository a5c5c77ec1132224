"""
ClientSession - Signer collaborator.

The codec only needs ``sign(bytes) -> bytes``; verification is done by
re-signing and comparing digests.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol, Union


SUPPORTED_ALGORITHMS = ("sha1", "sha256", "sha384", "sha512")


class Signer(Protocol):
    """
    Produces a message authentication tag over a payload.

    Implementations must be deterministic for a given key so the same
    bytes always produce the same digest.
    """

    def sign(self, data: bytes) -> bytes:
        ...


class HmacSigner:
    """
    HMAC-based payload signer.

    Example:
        >>> signer = HmacSigner("a-long-random-secret-token")
        >>> digest = signer.sign(b"user=YWxpY2U=")
        >>> len(digest)
        32
    """

    __slots__ = ("_secret_key", "_algorithm", "_hash_func")

    def __init__(self, secret_key: Union[str, bytes], algorithm: str = "sha256"):
        """
        Initialize signer.

        Args:
            secret_key: Secret key for signing
            algorithm: Hash algorithm (sha1, sha256, sha384, sha512)
        """
        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")
        if not secret_key:
            raise ValueError("Signing key must not be empty")

        algorithm = algorithm.lower()
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"Unsupported signing algorithm: {algorithm} "
                f"(expected one of {', '.join(SUPPORTED_ALGORITHMS)})"
            )

        self._secret_key = secret_key
        self._algorithm = algorithm
        self._hash_func = getattr(hashlib, algorithm)

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def digest_size(self) -> int:
        return self._hash_func().digest_size

    def sign(self, data: bytes) -> bytes:
        """Return the raw HMAC digest of data."""
        return hmac.new(self._secret_key, bytes(data), self._hash_func).digest()

    def __repr__(self) -> str:
        return f"HmacSigner(algorithm={self._algorithm!r})"


def constant_time_equals(left: bytes, right: bytes) -> bool:
    """Compare two digests for exact equality without leaking timing."""
    return hmac.compare_digest(left, right)
