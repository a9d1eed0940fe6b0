"""Shared fixtures for the vault tests."""
import os

import pytest

from ledger_vault.storage import MemoryRecordStore
from ledger_vault.vault import VaultConfig, generate_dek


@pytest.fixture
def key():
    """A random 256-bit key."""
    return os.urandom(32)


@pytest.fixture
def dek():
    """A random DEK."""
    return generate_dek()


@pytest.fixture
def secret():
    """A random process-wide session secret."""
    return os.urandom(32)


@pytest.fixture
def config(secret):
    """Vault configuration with the minimum allowed PBKDF2 work factor."""
    return VaultConfig(session_secret=secret, salt_size=16)


@pytest.fixture
def store():
    """Store with one user (no key material yet) and legacy plaintext records."""
    return MemoryRecordStore({
        "users": [
            {"id": "u1", "email": "alice@example.com"},
            {"id": "u2", "email": "bob@example.com"},
        ],
        "wallets": [
            {"id": "w1", "user_id": "u1", "name": "Main", "balance": 1234.56},
            {"id": "w2", "user_id": "u1", "name": "Savings", "balance": "500.10"},
            {"id": "w3", "user_id": "u2", "name": "Other", "balance": 99},
        ],
        "transactions": [
            {"id": "t1", "wallet_id": "w1", "amount": -20.5},
            {"id": "t2", "wallet_id": "w2", "amount": "100"},
            {"id": "t3", "wallet_id": "w3", "amount": 7},
        ],
        "assets": [
            {
                "id": "a1", "user_id": "u1", "quantity": "0.5",
                "current_price": 30000, "total_value": 15000.0,
            },
        ],
    })
