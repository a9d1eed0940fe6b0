"""
Vault Configuration — Session secret loading and validated settings.

Reads the session-transport secret from the environment:
    COOKIE_SECRET = <hex-encoded 32-byte key>

Optional tuning:
    VAULT_PBKDF2_ITERATIONS = <int, >= 100000>
    VAULT_SESSION_MAX_AGE = <seconds, default 7 days>
    VAULT_COOKIE_SECURE = 1|true|yes (implied by APP_ENV=production)

Security Note:
    Never log key material. The secret is excluded from the model repr.
"""
import os
import secrets
import logging

from pydantic import BaseModel, Field, field_validator

from ..exceptions import KeyMaterialMissing
from ..conf import SESSION_COOKIE_NAME, SESSION_MAX_AGE
from .crypto import KEY_LENGTH, PBKDF2_ITERATIONS, SALT_SIZE

logger = logging.getLogger("ledger.vault")

_SECRET_ENV = "COOKIE_SECRET"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def load_session_secret() -> bytes:
    """Load the session-transport secret from the COOKIE_SECRET env var.

    The value must be hex-encoded and decode to exactly 32 bytes.

    Returns:
        Raw 32-byte secret.

    Raises:
        KeyMaterialMissing: If the variable is unset, not hex, or the wrong size.
    """
    raw = os.environ.get(_SECRET_ENV)
    if not raw:
        raise KeyMaterialMissing(
            f"{_SECRET_ENV} environment variable is not set. "
            f"Set {_SECRET_ENV}=<hex-encoded-32-byte-key>"
        )
    try:
        secret = bytes.fromhex(raw.strip())
    except ValueError:
        raise KeyMaterialMissing(
            f"{_SECRET_ENV} must be a hex-encoded string"
        ) from None
    if len(secret) != KEY_LENGTH:
        raise KeyMaterialMissing(
            f"{_SECRET_ENV} must decode to exactly {KEY_LENGTH} bytes, "
            f"got {len(secret)}"
        )
    logger.debug("Loaded session secret from %s", _SECRET_ENV)
    return secret


def generate_session_secret() -> str:
    """Generate a random 32-byte session secret and return it hex-encoded.

    This is a utility for operators provisioning a new deployment.
    """
    return secrets.token_hex(KEY_LENGTH)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    session_secret: bytes = Field(repr=False)
    pbkdf2_iterations: int = Field(default=PBKDF2_ITERATIONS, ge=100_000)
    salt_size: int = Field(default=SALT_SIZE, ge=16, le=32)
    session_max_age: int = Field(default=SESSION_MAX_AGE, ge=60)
    cookie_name: str = Field(default=SESSION_COOKIE_NAME, min_length=1)
    cookie_secure: bool = False

    model_config = {"frozen": True}

    @field_validator("session_secret")
    @classmethod
    def validate_secret(cls, v: bytes) -> bytes:
        """Session secret must match the cipher key size."""
        if len(v) != KEY_LENGTH:
            raise ValueError(
                f"session_secret must be exactly {KEY_LENGTH} bytes, got {len(v)}"
            )
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            KeyMaterialMissing: If COOKIE_SECRET is absent or malformed.
        """
        session_secret = load_session_secret()
        kwargs = {"session_secret": session_secret}
        iterations = os.environ.get("VAULT_PBKDF2_ITERATIONS")
        if iterations:
            kwargs["pbkdf2_iterations"] = int(iterations)
        max_age = os.environ.get("VAULT_SESSION_MAX_AGE")
        if max_age:
            kwargs["session_max_age"] = int(max_age)
        production = os.environ.get("APP_ENV", "").strip().lower() in (
            "prod", "production",
        )
        kwargs["cookie_secure"] = production or _env_flag("VAULT_COOKIE_SECURE")
        return cls(**kwargs)
