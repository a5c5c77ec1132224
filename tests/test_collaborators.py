"""
Tests for the default collaborators: HmacSigner, AESGCMCrypto, FernetCrypto,
JsonValueSerializer and TypeRegistry.
"""

import base64
import hashlib
import hmac

import pytest
from cryptography.exceptions import InvalidTag
from cryptography.fernet import InvalidToken

from clientsession.crypto import AESGCMCrypto, FernetCrypto
from clientsession.signing import HmacSigner, constant_time_equals
from clientsession.values import JsonValueSerializer, TypeRegistry


# ============================================================================
# HmacSigner
# ============================================================================

class TestHmacSigner:

    def test_matches_hmac(self):
        signer = HmacSigner("secret-token")
        expected = hmac.new(b"secret-token", b"payload", hashlib.sha256).digest()
        assert signer.sign(b"payload") == expected

    def test_deterministic(self, signer):
        assert signer.sign(b"abc") == signer.sign(b"abc")
        assert signer.sign(b"abc") != signer.sign(b"abd")

    def test_bytes_key(self):
        assert HmacSigner(b"key").sign(b"x") == HmacSigner("key").sign(b"x")

    @pytest.mark.parametrize("algorithm,size", [
        ("sha1", 20), ("sha256", 32), ("SHA384", 48), ("sha512", 64),
    ])
    def test_algorithms(self, algorithm, size):
        signer = HmacSigner("key", algorithm)
        assert len(signer.sign(b"x")) == size
        assert signer.digest_size == size

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError):
            HmacSigner("key", "md5")

    def test_empty_key(self):
        with pytest.raises(ValueError):
            HmacSigner("")

    def test_accepts_bytearray(self, signer):
        assert signer.sign(bytearray(b"abc")) == signer.sign(b"abc")

    def test_repr_hides_key(self):
        assert "topsecret" not in repr(HmacSigner("topsecret"))

    def test_constant_time_equals(self):
        assert constant_time_equals(b"abc", b"abc")
        assert not constant_time_equals(b"abc", b"abd")
        assert not constant_time_equals(b"abc", b"ab")


# ============================================================================
# AESGCMCrypto
# ============================================================================

class TestAESGCMCrypto:

    def test_round_trip(self, crypto):
        assert crypto.decrypt(crypto.encrypt(b"user=alice")) == b"user=alice"

    def test_empty_plaintext(self, crypto):
        assert crypto.decrypt(crypto.encrypt(b"")) == b""

    def test_fresh_nonce(self, crypto):
        assert crypto.encrypt(b"same") != crypto.encrypt(b"same")

    def test_layout(self, crypto):
        ciphertext = crypto.encrypt(b"abc")
        # nonce + plaintext + tag
        assert len(ciphertext) == 12 + 3 + 16

    @pytest.mark.parametrize("bits", [128, 192, 256])
    def test_key_sizes(self, bits):
        crypto = AESGCMCrypto(AESGCMCrypto.generate_key(bits))
        assert crypto.decrypt(crypto.encrypt(b"x")) == b"x"

    def test_bad_key_length(self):
        with pytest.raises(ValueError):
            AESGCMCrypto(b"short")

    def test_wrong_key(self, crypto):
        other = AESGCMCrypto(AESGCMCrypto.generate_key())
        with pytest.raises(InvalidTag):
            other.decrypt(crypto.encrypt(b"abc"))

    def test_tampered(self, crypto):
        ciphertext = bytearray(crypto.encrypt(b"abc"))
        ciphertext[-1] ^= 0x01
        with pytest.raises(InvalidTag):
            crypto.decrypt(bytes(ciphertext))

    def test_too_short(self, crypto):
        with pytest.raises(ValueError):
            crypto.decrypt(b"\x00" * 12)


# ============================================================================
# FernetCrypto
# ============================================================================

class TestFernetCrypto:

    def test_round_trip(self):
        crypto = FernetCrypto(FernetCrypto.generate_key())
        assert crypto.decrypt(crypto.encrypt(b"user=alice")) == b"user=alice"

    def test_rotation(self):
        old_key, new_key = FernetCrypto.generate_key(), FernetCrypto.generate_key()
        old = FernetCrypto(old_key)
        rotated = FernetCrypto([new_key, old_key])

        assert rotated.decrypt(old.encrypt(b"legacy")) == b"legacy"
        with pytest.raises(InvalidToken):
            old.decrypt(rotated.encrypt(b"fresh"))

    def test_string_key(self):
        crypto = FernetCrypto(FernetCrypto.generate_key().decode("ascii"))
        assert crypto.decrypt(crypto.encrypt(b"x")) == b"x"

    def test_no_keys(self):
        with pytest.raises(ValueError):
            FernetCrypto([])

    def test_invalid_key(self):
        with pytest.raises(ValueError):
            FernetCrypto(b"not-a-fernet-key")


# ============================================================================
# JsonValueSerializer & TypeRegistry
# ============================================================================

class TestJsonValueSerializer:

    @pytest.mark.parametrize("value", [
        "alice", "", 0, -12, 3.25, True, None, [1, 2], {"a": {"b": [None]}}, "ü & = :",
    ])
    def test_round_trip(self, value):
        serializer = JsonValueSerializer()
        assert serializer.deserialize(None, serializer.serialize(None, value)) == value

    def test_output_is_base64url(self):
        data = JsonValueSerializer().serialize(None, {"x": "&=+/%"})
        assert data == base64.urlsafe_b64encode(b'{"x":"&=+/%"}')
        for char in b"&+/%":
            assert char not in data

    def test_registered_type(self, registry, point_type):
        serializer = JsonValueSerializer()
        data = serializer.serialize(registry, point_type(1, 2))
        assert base64.urlsafe_b64decode(data) == b'{"__type__":"point","value":[1,2]}'
        assert serializer.deserialize(registry, data) == point_type(1, 2)

    def test_unregistered_type(self):
        with pytest.raises(TypeError):
            JsonValueSerializer().serialize(None, object())

    def test_unknown_tag(self, registry, point_type):
        serializer = JsonValueSerializer()
        data = serializer.serialize(registry, point_type(1, 2))
        with pytest.raises(ValueError):
            serializer.deserialize(TypeRegistry(), data)

    def test_foreign_context_ignored(self):
        serializer = JsonValueSerializer()
        data = serializer.serialize({"not": "a registry"}, [1])
        assert serializer.deserialize(object(), data) == [1]

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            JsonValueSerializer().deserialize(None, base64.urlsafe_b64encode(b"{nope"))


class TestTypeRegistry:

    def test_register_and_lookup(self, registry, point_type):
        assert "point" in registry
        assert len(registry) == 1
        assert registry.for_tag("point").type is point_type
        assert registry.for_type(point_type).tag == "point"

    def test_subclass_lookup(self, registry, point_type):
        class Point3(point_type):
            pass

        assert registry.for_type(Point3).tag == "point"

    def test_missing(self, registry):
        assert registry.for_tag("nope") is None
        assert registry.for_type(int) is None

    def test_duplicate_tag(self, registry):
        with pytest.raises(ValueError):
            registry.register("point", complex, str, complex)

    def test_duplicate_type(self, registry, point_type):
        with pytest.raises(ValueError):
            registry.register("other", point_type, str, str)

    def test_decorator(self):
        registry = TypeRegistry()

        @registry.register_type("money", encode=lambda m: m.cents, decode=lambda c: Money(c))
        class Money:
            def __init__(self, cents):
                self.cents = cents

            def __eq__(self, other):
                return isinstance(other, Money) and other.cents == self.cents

        serializer = JsonValueSerializer()
        assert serializer.deserialize(registry, serializer.serialize(registry, Money(250))) == Money(250)
