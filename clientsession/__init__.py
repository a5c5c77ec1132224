"""
ClientSession - Signed, optionally encrypted, cookie-borne sessions.

Session state lives entirely in the cookie:
- Keys are form-urlencoded, values go through a pluggable serializer
- The flat payload is optionally encrypted and always signed
- Oversized envelopes are split across several cookies

Example:
    >>> from clientsession import SessionCodec, HmacSigner
    >>> codec = SessionCodec(HmacSigner("a-long-random-secret-token"))
    >>> cookies = codec.serialize(None, {"user": "alice"}, max_cookie_size=1932)
    >>> codec.deserialize(None, cookies)["user"]
    'alice'
"""

from .codec import (
    SESSION_SEPARATOR,
    SessionCodec,
    b64url_decode,
    b64url_encode,
    partition,
)

from .config import (
    ClientSessionConfig,
    ConfigError,
    ConfigLoader,
    build_codec,
    create_crypto,
)

from .crypto import (
    Crypto,
    AESGCMCrypto,
    FernetCrypto,
)

from .data import SessionData

from .escaping import (
    assemble_payload,
    escape_key,
    parse_payload,
)

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    SessionFault,
    CodecFailure,
    SessionTamperedFault,
)

from .signing import (
    Signer,
    HmacSigner,
    constant_time_equals,
)

from .values import (
    ValueSerializer,
    JsonValueSerializer,
    TypeCodec,
    TypeRegistry,
)

__all__ = [
    # Codec
    "SESSION_SEPARATOR",
    "SessionCodec",
    "b64url_decode",
    "b64url_encode",
    "partition",
    # Config
    "ClientSessionConfig",
    "ConfigError",
    "ConfigLoader",
    "build_codec",
    "create_crypto",
    # Crypto
    "Crypto",
    "AESGCMCrypto",
    "FernetCrypto",
    # Data
    "SessionData",
    # Escaping
    "assemble_payload",
    "escape_key",
    "parse_payload",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "SessionFault",
    "CodecFailure",
    "SessionTamperedFault",
    # Signing
    "Signer",
    "HmacSigner",
    "constant_time_equals",
    # Values
    "ValueSerializer",
    "JsonValueSerializer",
    "TypeCodec",
    "TypeRegistry",
]

__version__ = "0.1.0"
