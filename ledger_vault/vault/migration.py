"""
Vault Field Migration — Encrypt a user's legacy plaintext financial fields.

Walks every wallet, transaction and asset owned by the user and rewrites
each sensitive field that does not yet carry the ciphertext delimiter.
Fields already encrypted are skipped, which makes the routine idempotent
and lets an interrupted run be finished by the next one. There is no
transaction across records; each record update stands on its own.

Security Note:
    Plaintext amounts exist in memory only while a record is rewritten.
    Never log field values.
"""
import logging
from typing import Any

from ..conf import SENSITIVE_FIELDS, WALLETS, TRANSACTIONS, ASSETS
from ..exceptions import InvalidFieldValue
from ..storage import AbstractRecordStore
from .crypto import is_ciphertext
from .fields import encrypt_field

logger = logging.getLogger("ledger.vault")


async def _owned_records(
    store: AbstractRecordStore, user_id: Any,
) -> list[tuple[str, dict]]:
    """Collect (kind, record) pairs owned by ``user_id``.

    Transactions are owned through their wallet.
    """
    wallets = await store.query(WALLETS, user_id=user_id)
    records = [(WALLETS, w) for w in wallets]
    wallet_ids = [w["id"] for w in wallets]
    if wallet_ids:
        transactions = await store.query(TRANSACTIONS, wallet_id=wallet_ids)
        records.extend((TRANSACTIONS, t) for t in transactions)
    assets = await store.query(ASSETS, user_id=user_id)
    records.extend((ASSETS, a) for a in assets)
    return records


async def migrate_user_fields(
    store: AbstractRecordStore,
    user_id: Any,
    dek: bytes,
) -> dict:
    """Encrypt every legacy financial field owned by ``user_id``.

    Args:
        store: Record store holding the user's records.
        user_id: Owner of the records to migrate.
        dek: Plaintext 32-byte DEK from the current session.

    Returns:
        Stats dict with keys: records, fields, migrated, skipped, errors.
    """
    stats = {"records": 0, "fields": 0, "migrated": 0, "skipped": 0, "errors": 0}

    for kind, record in await _owned_records(store, user_id):
        stats["records"] += 1
        updates = {}
        for name in SENSITIVE_FIELDS[kind]:
            value = record.get(name)
            if value is None:
                continue
            stats["fields"] += 1
            if is_ciphertext(value):
                stats["skipped"] += 1
                continue
            try:
                updates[name] = encrypt_field(value, dek)
            except InvalidFieldValue as err:
                logger.error(
                    "Cannot migrate %s.%s for id=%s: %s",
                    kind, name, record["id"], err,
                )
                stats["errors"] += 1
        if updates:
            await store.update(kind, record["id"], updates)
            stats["migrated"] += len(updates)

    if stats["migrated"] or stats["errors"]:
        logger.info("Field migration for user=%s: %s", user_id, stats)
    return stats
