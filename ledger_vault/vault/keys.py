"""
Vault Key Lifecycle — Provisioning, unwrapping and re-wrapping user DEKs.

Each user owns one DEK. It is wrapped under a KEK derived from the login
password and a per-user salt; only the salt and the wrapped DEK are stored.

Security Note:
    The KEK exists only inside these calls. Never log passwords or keys.
"""
import base64
import logging
import binascii
from typing import NamedTuple

from ..exceptions import MalformedCiphertext
from .crypto import (
    PBKDF2_ITERATIONS,
    SALT_SIZE,
    KEY_LENGTH,
    derive_kek,
    generate_dek,
    generate_salt,
    encrypt,
    decrypt,
)

logger = logging.getLogger("ledger.vault")


class ProvisionedKeys(NamedTuple):
    """Key material produced for a user without stored encryption data."""
    salt: bytes
    wrapped_dek: str
    dek: bytes


def wrap_dek(dek: bytes, key: bytes) -> str:
    """Encrypt the base64 text of a DEK under ``key``."""
    return encrypt(base64.b64encode(dek), key)


def unwrap_dek(wrapped: str, key: bytes) -> bytes:
    """Reverse :func:`wrap_dek`.

    Raises:
        MalformedCiphertext: If the wrapped value cannot be parsed.
        DecryptionFailed: If ``key`` does not open the wrapped value.
    """
    encoded = decrypt(wrapped, key)
    try:
        dek = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedCiphertext("Wrapped DEK payload is not base64") from None
    if len(dek) != KEY_LENGTH:
        raise MalformedCiphertext("Wrapped DEK has the wrong length")
    return dek


def provision_new_user(
    password: str,
    iterations: int = PBKDF2_ITERATIONS,
    salt_size: int = SALT_SIZE,
) -> ProvisionedKeys:
    """Generate a salt and DEK for a user and wrap the DEK under the KEK.

    The caller persists ``salt`` and ``wrapped_dek`` and keeps ``dek`` for
    the current session.

    Args:
        password: User login password.
        iterations: PBKDF2 work factor.
        salt_size: Salt length in bytes.

    Returns:
        ProvisionedKeys(salt, wrapped_dek, dek).
    """
    salt = generate_salt(salt_size)
    dek = generate_dek()
    kek = derive_kek(password, salt, iterations)
    logger.debug("Provisioned new DEK (salt_size=%d)", salt_size)
    return ProvisionedKeys(salt, wrap_dek(dek, kek), dek)


def unwrap_existing_user(
    password: str,
    salt: bytes,
    wrapped_dek: str,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Re-derive the KEK and open the stored wrapped DEK.

    Args:
        password: User login password.
        salt: Stored per-user salt.
        wrapped_dek: Stored wrapped DEK.
        iterations: PBKDF2 work factor used at provisioning time.

    Returns:
        Plaintext 32-byte DEK.

    Raises:
        DecryptionFailed: If the password does not match.
    """
    kek = derive_kek(password, salt, iterations)
    return unwrap_dek(wrapped_dek, kek)


def rewrap_for_password(
    old_password: str,
    new_password: str,
    salt: bytes,
    wrapped_dek: str,
    iterations: int = PBKDF2_ITERATIONS,
    salt_size: int = SALT_SIZE,
) -> ProvisionedKeys:
    """Move an existing DEK from the old password's KEK to a new one.

    The DEK itself does not change, so stored field ciphertexts stay valid.

    Returns:
        ProvisionedKeys with the new salt, the re-wrapped DEK and the DEK.

    Raises:
        DecryptionFailed: If ``old_password`` does not open ``wrapped_dek``.
    """
    dek = unwrap_existing_user(old_password, salt, wrapped_dek, iterations)
    new_salt = generate_salt(salt_size)
    kek = derive_kek(new_password, new_salt, iterations)
    return ProvisionedKeys(new_salt, wrap_dek(dek, kek), dek)
