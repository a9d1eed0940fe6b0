"""Ledger Vault exceptions.

Every failure raised by the vault derives from ``VaultError``. Tag
verification failures never say whether the key or the data was wrong.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class MalformedCiphertext(VaultError, ValueError):
    """Ciphertext does not have the ``nonce:tag:body`` structure."""


class DecryptionFailed(VaultError):
    """Authentication tag did not verify (wrong key or corrupted data)."""

    def __init__(self, message: str = "Could not decrypt value"):
        super().__init__(message)


class InvalidPassword(DecryptionFailed):
    """The wrapped DEK could not be opened with the supplied password."""

    def __init__(self, message: str = "Invalid password"):
        super().__init__(message)


class SessionExpired(VaultError):
    """Session token is missing, invalid or expired; password re-entry required."""

    def __init__(self, message: str = "Encryption session expired"):
        super().__init__(message)


class KeyMaterialMissing(VaultError, RuntimeError):
    """The process-wide session secret is absent or malformed."""


class UserNotFound(VaultError, LookupError):
    """No user record exists for the given id."""


class InvalidFieldValue(VaultError, ValueError):
    """A value cannot be represented as a financial amount."""
