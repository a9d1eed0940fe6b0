"""
PostgreSQL record store over an asyncpg-compatible connection pool.

Each record kind maps to a table in one schema (``ledger`` by default).
Table and column names are validated identifiers; all values travel as
``$n`` parameters.
"""
import re
import logging
from typing import Any, Optional

from .abstract import AbstractRecordStore

logger = logging.getLogger("ledger.storage")

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")

_SELECT_ONE = "SELECT * FROM {table} WHERE id = $1"
_SELECT_MANY = "SELECT * FROM {table}{where} ORDER BY id"
_UPDATE = "UPDATE {table} SET {assignments} WHERE id = ${id_param}"


def _ident(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class PgRecordStore(AbstractRecordStore):
    """Record store backed by PostgreSQL tables."""

    def __init__(
        self,
        db_pool: Any,
        schema: str = "ledger",
        tables: Optional[dict[str, str]] = None,
    ):
        self._db = db_pool
        self._schema = _ident(schema)
        self._tables = {
            kind: _ident(table) for kind, table in (tables or {}).items()
        }

    def _table(self, kind: str) -> str:
        table = self._tables.get(kind, kind)
        return f"{self._schema}.{_ident(table)}"

    async def get(self, kind: str, record_id: Any) -> Optional[dict]:
        sql = _SELECT_ONE.format(table=self._table(kind))
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(sql, record_id)
        return dict(row) if row is not None else None

    async def update(self, kind: str, record_id: Any, fields: dict) -> None:
        if not fields:
            return
        names = list(fields)
        assignments = ", ".join(
            f"{_ident(name)} = ${idx}" for idx, name in enumerate(names, start=1)
        )
        sql = _UPDATE.format(
            table=self._table(kind),
            assignments=assignments,
            id_param=len(names) + 1,
        )
        async with self._db.acquire() as conn:
            status = await conn.execute(
                sql, *(fields[name] for name in names), record_id,
            )
        if status == "UPDATE 0":
            raise KeyError(f"{kind} record {record_id!r} not found")
        logger.debug("Updated %s id=%s fields=%s", kind, record_id, sorted(names))

    async def query(self, kind: str, **filters: Any) -> list[dict]:
        clauses = []
        params = []
        for idx, (name, value) in enumerate(filters.items(), start=1):
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(f"{_ident(name)} = ANY(${idx})")
                params.append(list(value))
            else:
                clauses.append(f"{_ident(name)} = ${idx}")
                params.append(value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = _SELECT_MANY.format(table=self._table(kind), where=where)
        async with self._db.acquire() as conn:
            rows = await conn.fetch(sql, *params)
        return [dict(row) for row in rows]
