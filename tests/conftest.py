"""
Shared test fixtures and helpers for the ClientSession test suite.
"""

from dataclasses import dataclass

import pytest

from clientsession.codec import SessionCodec
from clientsession.crypto import AESGCMCrypto
from clientsession.signing import HmacSigner
from clientsession.values import TypeRegistry


SECRET_TOKEN = "test-secret-token-0123456789"


@dataclass(frozen=True)
class Point:
    x: int
    y: int


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def signer():
    return HmacSigner(SECRET_TOKEN)


@pytest.fixture
def aes_key():
    return AESGCMCrypto.generate_key()


@pytest.fixture
def crypto(aes_key):
    return AESGCMCrypto(aes_key)


@pytest.fixture
def point_type():
    return Point


@pytest.fixture
def registry():
    registry = TypeRegistry()
    registry.register(
        "point",
        Point,
        encode=lambda p: [p.x, p.y],
        decode=lambda data: Point(*data),
    )
    return registry


# ============================================================================
# Codecs
# ============================================================================


@pytest.fixture
def codec(signer):
    return SessionCodec(signer=signer)


@pytest.fixture
def encrypted_codec(signer, crypto):
    return SessionCodec(signer=signer, crypto=crypto)

