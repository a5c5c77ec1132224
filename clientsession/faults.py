"""
ClientSession - Fault definitions.

Defines:
- Severity levels
- FaultDomain (explicit fault domains)
- Fault base class (structured fault objects)
- Session and codec faults

All codec errors surfaced to callers are structured Faults, not bare
exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level and how callers should react.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Fatal, unrecoverable, abort


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.SECURITY = FaultDomain("security", "Security and integrity")
FaultDomain.CODEC = FaultDomain("codec", "Session encoding and decoding")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.SECURITY: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.CODEC: {"severity": Severity.ERROR, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "SESSION_CODEC_FAILURE")
        message: Human-readable summary
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain
        retryable: Whether this fault can be retried
        public: Whether safe to expose to client
        metadata: Additional context data

    Subclasses usually declare ``code``, ``message`` and ``domain`` as class
    attributes and only pass per-instance details to ``__init__``.
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or getattr(type(self), "severity", None) or defaults["severity"]
        if retryable is not None:
            self.retryable = retryable
        else:
            self.retryable = getattr(type(self), "retryable", defaults["retryable"])
        self.public = public if public is not None else getattr(type(self), "public", False)
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize fault to a dictionary (for logs and error responses)."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }


# ============================================================================
# Session Faults
# ============================================================================

class SessionFault(Fault):
    """Base class for client-side session faults."""

    domain = FaultDomain.SECURITY


class CodecFailure(SessionFault):
    """
    Session could not be encoded or decoded.

    Raised when a collaborator (signer, crypto, value serializer) fails, or
    when key escaping or payload parsing fails. The original exception is
    kept as ``cause`` and chained as ``__cause__``.
    """

    code = "SESSION_CODEC_FAILURE"
    message = "Session codec failure"
    domain = FaultDomain.CODEC
    severity = Severity.ERROR
    public = False
    retryable = False

    def __init__(self, operation: str, cause: BaseException | None = None, **kwargs):
        super().__init__(**kwargs)
        self.operation = operation
        self.cause = cause
        if cause is not None:
            self.message = f"Session {operation} failed: {type(cause).__name__}: {cause}"
        else:
            self.message = f"Session {operation} failed"
        self.args = (self.message,)


class SessionTamperedFault(SessionFault):
    """
    Session envelope is malformed or its digest does not match.

    The codec never raises this; it hands it to the ``on_invalid`` hook so
    callers can tell tampering apart from an absent session.
    """

    code = "SESSION_TAMPERED"
    message = "Session envelope rejected"
    severity = Severity.WARN
    public = False
    retryable = False

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Session envelope rejected: {reason}"
        self.args = (self.message,)
