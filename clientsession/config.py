"""
Config system - Layered client-side session configuration.

Merge order (later overrides earlier):
1. Defaults (ClientSessionConfig field defaults)
2. Config file (JSON or YAML)
3. .env file
4. Environment variables (CLIENTSESSION_* prefix)
5. Manual overrides
"""

from __future__ import annotations

import base64
import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from .codec import DEFAULT_MAX_COOKIE_SIZE, SessionCodec
from .crypto import AESGCMCrypto, Crypto, FernetCrypto
from .signing import SUPPORTED_ALGORITHMS, HmacSigner
from .values import ValueSerializer


ENV_PREFIX = "CLIENTSESSION_"
CIPHERS = ("aesgcm", "fernet")
MIN_SECRET_TOKEN_LENGTH = 16
VERBATIM_KEYS = ("secret_token", "secret_key", "cipher", "mac_algorithm")


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class ClientSessionConfig:
    """
    Client-side session configuration.

    Attributes:
        secret_token: Key material for the HMAC signer (required)
        mac_algorithm: HMAC hash algorithm
        secret_key: Base64url encryption key; enables payload encryption
        cipher: "aesgcm" or "fernet" (only used with secret_key)
        max_cookie_size: Maximum characters per session cookie
    """

    secret_token: str | None = None
    mac_algorithm: str = "sha256"
    secret_key: str | None = None
    cipher: str = "aesgcm"
    max_cookie_size: int = DEFAULT_MAX_COOKIE_SIZE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientSessionConfig":
        """Build config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def encrypted(self) -> bool:
        return bool(self.secret_key)

    def validate(self) -> "ClientSessionConfig":
        """
        Validate configuration.

        Raises:
            ConfigError: If any setting is missing or out of range
        """
        if not self.secret_token:
            raise ConfigError("secret_token is required to sign session cookies")
        if len(str(self.secret_token)) < MIN_SECRET_TOKEN_LENGTH:
            raise ConfigError(
                f"secret_token must be at least {MIN_SECRET_TOKEN_LENGTH} characters"
            )
        if str(self.mac_algorithm).lower() not in SUPPORTED_ALGORITHMS:
            raise ConfigError(f"Unsupported mac_algorithm: {self.mac_algorithm}")
        if str(self.cipher).lower() not in CIPHERS:
            raise ConfigError(f"Unsupported cipher: {self.cipher}")
        if not isinstance(self.max_cookie_size, int) or isinstance(self.max_cookie_size, bool):
            raise ConfigError("max_cookie_size must be an integer")
        if self.max_cookie_size < 1:
            raise ConfigError("max_cookie_size must be >= 1")
        return self


class ConfigLoader:
    """
    Loads and merges client-side session configuration from multiple sources.

    Example:
        >>> config = ConfigLoader.load(env_file=".env").build()
        >>> codec = build_codec(config)
    """

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_prefix: str = ENV_PREFIX,
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_environ: bool = True,
    ) -> "ConfigLoader":
        """
        Load configuration from every configured source.

        Args:
            path: JSON or YAML config file
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            use_environ: Read variables from os.environ

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if path:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        if use_environ:
            loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_file(self, path: Path):
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        if path.suffix in (".yaml", ".yml"):
            self._load_yaml_file(path)
        elif path.suffix == ".json":
            self._load_json_file(path)
        else:
            raise ConfigError(f"Unsupported config file type: {path.suffix}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        self._merge_section(data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
        if data:
            self._merge_section(data)

    def _merge_section(self, data: Any):
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping")
        # Accept either a bare mapping or one nested under "sessions"
        section = data.get("sessions", data)
        if not isinstance(section, dict):
            raise ConfigError("'sessions' config section must be a mapping")
        self._merge_dict(self.config_data, section)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        if not Path(path).exists():
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_key(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_key(key, value)

    def _set_key(self, key: str, value: str):
        """Convert CLIENTSESSION_MAX_COOKIE_SIZE to max_cookie_size."""
        name = key[len(self.env_prefix):].lower()
        self.config_data[name] = self._parse_value(name, value)

    @staticmethod
    def _parse_value(name: str, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Secrets and algorithm names stay verbatim
        if name in VERBATIM_KEYS:
            return value

        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.config_data.get(key, default)

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()

    def build(self) -> ClientSessionConfig:
        """Build and validate a ClientSessionConfig."""
        return ClientSessionConfig.from_dict(self.config_data).validate()


# ============================================================================
# Codec Factory
# ============================================================================

def decode_key(secret_key: str) -> bytes:
    """Decode a base64url encryption key (padding optional)."""
    padding = -len(secret_key) % 4
    try:
        return base64.urlsafe_b64decode(secret_key + "=" * padding)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"secret_key is not valid base64url: {exc}") from exc


def create_crypto(config: ClientSessionConfig) -> Crypto | None:
    """
    Create the configured crypto collaborator.

    Returns:
        Crypto instance, or None when encryption is disabled

    Raises:
        ConfigError: If the key does not fit the cipher
    """
    if not config.secret_key:
        return None

    cipher = config.cipher.lower()
    try:
        if cipher == "aesgcm":
            return AESGCMCrypto(decode_key(config.secret_key))
        if cipher == "fernet":
            return FernetCrypto(config.secret_key)
    except ValueError as exc:
        raise ConfigError(f"Invalid secret_key for {cipher}: {exc}") from exc

    raise ConfigError(f"Unsupported cipher: {config.cipher}")


def build_codec(
    config: ClientSessionConfig,
    value_serializer: ValueSerializer | None = None,
    **kwargs: Any,
) -> SessionCodec:
    """
    Build a SessionCodec from configuration.

    The configured max_cookie_size becomes the codec's partition size.
    Extra keyword arguments (logger, on_invalid) go to SessionCodec.
    """
    config.validate()
    signer = HmacSigner(config.secret_token, config.mac_algorithm)
    return SessionCodec(
        signer=signer,
        crypto=create_crypto(config),
        value_serializer=value_serializer,
        max_cookie_size=config.max_cookie_size,
        **kwargs,
    )
