"""In-process record store."""
import copy
import logging
from typing import Any, Optional

from .abstract import AbstractRecordStore, matches

logger = logging.getLogger("ledger.storage")


class MemoryRecordStore(AbstractRecordStore):
    """Dict-backed store, used for tests and local tooling.

    Records are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self, data: Optional[dict[str, list[dict]]] = None):
        self._tables: dict[str, dict[Any, dict]] = {}
        for kind, rows in (data or {}).items():
            for row in rows:
                self.insert(kind, row)

    def insert(self, kind: str, record: dict) -> None:
        if "id" not in record:
            raise ValueError("Record must have an 'id'")
        self._tables.setdefault(kind, {})[record["id"]] = copy.deepcopy(record)

    def snapshot(self) -> dict[str, dict[Any, dict]]:
        """Deep copy of every table, for comparisons."""
        return copy.deepcopy(self._tables)

    async def get(self, kind: str, record_id: Any) -> Optional[dict]:
        record = self._tables.get(kind, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(self, kind: str, record_id: Any, fields: dict) -> None:
        try:
            record = self._tables[kind][record_id]
        except KeyError:
            raise KeyError(f"{kind} record {record_id!r} not found") from None
        record.update(copy.deepcopy(fields))
        logger.debug("Updated %s id=%s fields=%s", kind, record_id, sorted(fields))

    async def query(self, kind: str, **filters: Any) -> list[dict]:
        return [
            copy.deepcopy(record)
            for record in self._tables.get(kind, {}).values()
            if matches(record, filters)
        ]
