"""Ledger Vault.

Per-user envelope encryption for wallet balances, transaction amounts and
asset valuations.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    MalformedCiphertext,
    DecryptionFailed,
    InvalidPassword,
    SessionExpired,
    KeyMaterialMissing,
    UserNotFound,
    InvalidFieldValue,
)

__all__ = [
    "__version__",
    "VaultError",
    "MalformedCiphertext",
    "DecryptionFailed",
    "InvalidPassword",
    "SessionExpired",
    "KeyMaterialMissing",
    "UserNotFound",
    "InvalidFieldValue",
]
