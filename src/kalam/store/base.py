"""Base class for record-collection data stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

Record = dict[str, Any]
Filters = Mapping[str, Any]


class DataStore(ABC):
    """Read/write access to named record collections.

    Filters are exact-match on every key. Implementations raise
    ``kalam.errors.StoreError`` on any failure.
    """

    @abstractmethod
    def select(
        self,
        collection: str,
        filters: Filters | None = None,
        *,
        in_: tuple[str, Iterable[Any]] | None = None,
        order: str | None = None,
        descending: bool = False,
        columns: Iterable[str] | None = None,
    ) -> list[Record]:
        """Return all records matching ``filters`` (and ``in_`` membership)."""

    @abstractmethod
    def insert(self, collection: str, records: Record | list[Record]) -> list[Record]:
        """Create one or more records and return them with generated ids."""

    @abstractmethod
    def update(self, collection: str, filters: Filters, patch: Record) -> None:
        """Merge ``patch`` into every record matching ``filters``."""

    @abstractmethod
    def delete_where(self, collection: str, filters: Filters) -> None:
        """Delete every record matching ``filters``."""

    def find(self, collection: str, filters: Filters) -> Record | None:
        """Return the first record matching ``filters``, or None."""
        rows = self.select(collection, filters)
        return rows[0] if rows else None
