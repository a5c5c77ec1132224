"""
ClientSession - Crypto collaborators.

Optional symmetric encryption of the flat payload. When a codec has no
crypto configured the payload travels in clear (but is still signed).

Classes:
    Crypto: Protocol the codec depends on
    AESGCMCrypto: AES-GCM with a random 96-bit nonce prefixed to each ciphertext
    FernetCrypto: Fernet tokens, with optional key rotation through MultiFernet
"""

from __future__ import annotations

import os
from typing import Protocol, Sequence, Union

from cryptography.fernet import Fernet, MultiFernet
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


_NONCE_LENGTH = 12  # 96-bit nonce per NIST SP 800-38D
_KEY_LENGTHS = (16, 24, 32)


class Crypto(Protocol):
    """Symmetric cipher over raw payload bytes."""

    def encrypt(self, data: bytes) -> bytes:
        ...

    def decrypt(self, data: bytes) -> bytes:
        ...


# ============================================================================
# AES-GCM
# ============================================================================

class AESGCMCrypto:
    """
    AES-GCM encryption for session payloads.

    Wire layout::

        nonce       (12 bytes)
        ciphertext  (remainder, including the 16-byte GCM tag)

    Args:
        key: 16, 24 or 32 bytes of key material (AES-128/192/256).
            Use generate_key() to create one.

    Raises:
        ValueError: If key has an unsupported length
    """

    __slots__ = ("_aesgcm",)

    def __init__(self, key: bytes) -> None:
        if len(key) not in _KEY_LENGTHS:
            raise ValueError(
                f"Key must be 16, 24 or 32 bytes for AES-GCM, got {len(key)}"
            )
        self._aesgcm = AESGCM(key)

    @staticmethod
    def generate_key(bit_length: int = 256) -> bytes:
        """Generate a random AES key of bit_length bits."""
        return AESGCM.generate_key(bit_length=bit_length)

    def encrypt(self, data: bytes) -> bytes:
        """Encrypt data under a fresh nonce and return ``nonce + ciphertext``."""
        nonce = os.urandom(_NONCE_LENGTH)
        return nonce + self._aesgcm.encrypt(nonce, bytes(data), None)

    def decrypt(self, data: bytes) -> bytes:
        """
        Decrypt bytes previously produced by encrypt().

        Raises:
            ValueError: If data is too short to hold a nonce
            cryptography.exceptions.InvalidTag: If the ciphertext was
                altered or the key is wrong
        """
        if len(data) <= _NONCE_LENGTH:
            raise ValueError("Ciphertext too short to contain a nonce")
        nonce, ciphertext = data[:_NONCE_LENGTH], data[_NONCE_LENGTH:]
        return self._aesgcm.decrypt(bytes(nonce), bytes(ciphertext), None)


# ============================================================================
# Fernet
# ============================================================================

class FernetCrypto:
    """
    Fernet (AES-128-CBC + HMAC-SHA256) encryption for session payloads.

    Several keys may be given for rotation: the first one encrypts, every
    key is tried on decrypt.
    """

    __slots__ = ("_fernet",)

    def __init__(self, keys: Union[bytes, str, Sequence[Union[bytes, str]]]) -> None:
        if isinstance(keys, (bytes, str)):
            keys = [keys]
        if not keys:
            raise ValueError("At least one Fernet key is required")
        self._fernet = MultiFernet([Fernet(key) for key in keys])

    @staticmethod
    def generate_key() -> bytes:
        """Generate a url-safe base64 Fernet key."""
        return Fernet.generate_key()

    def encrypt(self, data: bytes) -> bytes:
        return self._fernet.encrypt(bytes(data))

    def decrypt(self, data: bytes) -> bytes:
        return self._fernet.decrypt(bytes(data))
