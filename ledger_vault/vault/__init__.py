"""Ledger Vault — Envelope encryption for per-user financial fields.

Security Note (Threat Model):
    Plaintext DEKs and amounts live in process memory while a request is
    handled. A memory dump of the application process can expose them.
    This is an accepted limitation; the vault protects data at rest and
    the session cookie in transit, not a compromised server process.
"""

from .config import VaultConfig, load_session_secret, generate_session_secret
from .crypto import encrypt, decrypt, derive_kek, generate_dek, generate_salt
from .keys import ProvisionedKeys, provision_new_user, unwrap_existing_user
from .session_transport import SessionTransport
from .fields import (
    Stored,
    StoredKind,
    classify_stored,
    encrypt_field,
    decrypt_field,
    decrypt_records,
)
from .migration import migrate_user_fields
from .bootstrap import SessionKeys, bootstrap_session, rewrap_user_key

__all__ = [
    "VaultConfig",
    "load_session_secret",
    "generate_session_secret",
    "encrypt",
    "decrypt",
    "derive_kek",
    "generate_dek",
    "generate_salt",
    "ProvisionedKeys",
    "provision_new_user",
    "unwrap_existing_user",
    "SessionTransport",
    "Stored",
    "StoredKind",
    "classify_stored",
    "encrypt_field",
    "decrypt_field",
    "decrypt_records",
    "migrate_user_fields",
    "SessionKeys",
    "bootstrap_session",
    "rewrap_user_key",
]
