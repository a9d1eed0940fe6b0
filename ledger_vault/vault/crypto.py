"""
Vault Crypto Core — Key derivation, key generation, encryption/decryption.

Implements the envelope scheme used to protect financial fields:
- KEK: PBKDF2-HMAC-SHA256(password, salt) → 32 bytes, never stored
- DEK: 32 random bytes, wrapped under the KEK (durable) or the session
  secret (transport)
- Values: AES-256-GCM under the DEK, rendered as text

Wire format (all segments standard base64):
    <nonce 12B>:<auth tag 16B>:<ciphertext body>

Security Note:
    Never log plaintext, ciphertext or key values.
    Nonces are random 96-bit, generated fresh on every call.
"""
import os
import base64
import binascii
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionFailed, MalformedCiphertext

logger = logging.getLogger("ledger.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 32
PBKDF2_ITERATIONS = 100_000

DELIMITER = ":"


# ---------------------------------------------------------------------------
# Key derivation / generation
# ---------------------------------------------------------------------------

def derive_kek(
    password: str,
    salt: bytes,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Derive a 32-byte key-encryption-key using PBKDF2-HMAC-SHA256.

    Deterministic for a given (password, salt, iterations). This call is
    deliberately slow; do not hold locks across it.

    Args:
        password: User login password.
        salt: Per-user random salt.
        iterations: PBKDF2 work factor.

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def generate_dek() -> bytes:
    """Return a fresh random 32-byte data-encryption-key."""
    return os.urandom(KEY_LENGTH)


def generate_salt(size: int = SALT_SIZE) -> bytes:
    """Return a fresh random salt (16..32 bytes)."""
    if not 16 <= size <= 32:
        raise ValueError(f"Salt size must be between 16 and 32 bytes, got {size}")
    return os.urandom(size)


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise ValueError(
            f"Key must be exactly {KEY_LENGTH} bytes, got {len(key)}"
        )


# ---------------------------------------------------------------------------
# AES-256-GCM
# ---------------------------------------------------------------------------

def encrypt(plaintext: bytes, key: bytes) -> str:
    """Encrypt bytes under a 256-bit key.

    Args:
        plaintext: Data to encrypt.
        key: Raw 32-byte key.

    Returns:
        Text ciphertext in ``nonce:tag:body`` form.

    Raises:
        ValueError: If ``plaintext`` is empty. Every ciphertext has three
            non-empty segments, so round-trips hold for non-empty byte
            strings only.
    """
    _check_key(key)
    if not plaintext:
        raise ValueError("Cannot encrypt an empty value")
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    body, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return DELIMITER.join(
        base64.b64encode(part).decode("ascii") for part in (nonce, tag, body)
    )


def _split(ciphertext: str) -> tuple[bytes, bytes, bytes]:
    """Parse the wire format into (nonce, tag, body)."""
    if not isinstance(ciphertext, str):
        raise MalformedCiphertext("Ciphertext must be text")
    parts = ciphertext.split(DELIMITER)
    if len(parts) != 3 or not all(parts):
        raise MalformedCiphertext(
            "Ciphertext must have exactly three non-empty segments"
        )
    try:
        nonce, tag, body = (
            base64.b64decode(part, validate=True) for part in parts
        )
    except (binascii.Error, ValueError):
        raise MalformedCiphertext("Ciphertext segment is not valid base64") from None
    if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
        raise MalformedCiphertext("Ciphertext nonce or tag has the wrong size")
    return nonce, tag, body


def decrypt(ciphertext: str, key: bytes) -> bytes:
    """Decrypt a ``nonce:tag:body`` ciphertext.

    Args:
        ciphertext: Text produced by :func:`encrypt`.
        key: Raw 32-byte key.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        MalformedCiphertext: If the structure cannot be parsed.
        DecryptionFailed: If the authentication tag does not verify.
    """
    _check_key(key)
    nonce, tag, body = _split(ciphertext)
    try:
        return AESGCM(key).decrypt(nonce, body + tag, None)
    except InvalidTag:
        raise DecryptionFailed() from None


def is_ciphertext(value) -> bool:
    """Return True when a stored value carries the ciphertext delimiter."""
    return isinstance(value, str) and DELIMITER in value
