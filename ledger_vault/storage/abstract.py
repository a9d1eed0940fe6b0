"""Abstract record store used by the vault."""
from abc import ABC, abstractmethod
from typing import Any, Optional


class AbstractRecordStore(ABC):
    """Minimal async interface over a key-value/row store.

    Records are plain dicts with an ``id`` key. A single ``update`` call is
    the unit of atomicity; the vault takes no locks around it.
    """

    @abstractmethod
    async def get(self, kind: str, record_id: Any) -> Optional[dict]:
        """Return the record with ``record_id`` or None."""

    @abstractmethod
    async def update(self, kind: str, record_id: Any, fields: dict) -> None:
        """Overwrite ``fields`` on an existing record."""

    @abstractmethod
    async def query(self, kind: str, **filters: Any) -> list[dict]:
        """Return records matching all filters.

        A list, tuple or set filter value matches any of its members.
        """


def matches(record: dict, filters: dict) -> bool:
    for name, expected in filters.items():
        value = record.get(name)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True
