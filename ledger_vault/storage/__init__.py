"""Record stores holding users, wallets, transactions and assets."""

from .abstract import AbstractRecordStore
from .memory import MemoryRecordStore
from .postgres import PgRecordStore

__all__ = [
    "AbstractRecordStore",
    "MemoryRecordStore",
    "PgRecordStore",
]
