"""JSON-backed record store.

Persists every collection in a single JSON file, loaded on init and
saved after every write operation. With no path it keeps everything in
memory, which is what the tests and offline drafting use.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from kalam.errors import StoreError
from kalam.store.base import DataStore, Filters, Record

logger = logging.getLogger(__name__)

STORE_FILENAME = ".kalam-store.json"


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    collections: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


def _matches(record: Record, filters: Filters | None) -> bool:
    if not filters:
        return True
    return all(record.get(key) == value for key, value in filters.items())


class JsonStore(DataStore):
    """Local implementation of the data store contract.

    Generates string ids and ``created_at`` stamps for inserted records
    that lack them, the way the hosted backend's column defaults do.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._data = self._load()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if self._path is None or not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                self._data.model_dump_json(indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise StoreError(f"Could not write {self._path}: {exc}") from exc

    def _rows(self, collection: str) -> list[Record]:
        return self._data.collections.setdefault(collection, [])

    # ── Read operations ──────────────────────────────────────────

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
        results = [r for r in self._rows(collection) if _matches(r, filters)]
        if in_ is not None:
            key, values = in_
            wanted = set(values)
            results = [r for r in results if r.get(key) in wanted]
        if order is not None:
            # None sorts last regardless of direction
            present = [r for r in results if r.get(order) is not None]
            missing = [r for r in results if r.get(order) is None]
            present.sort(key=lambda r: r[order], reverse=descending)
            results = present + missing
        if columns is not None:
            keep = list(columns)
            return [{k: r.get(k) for k in keep} for r in results]
        return copy.deepcopy(results)

    # ── Write operations ─────────────────────────────────────────

    def insert(self, collection: str, records: Record | list[Record]) -> list[Record]:
        batch = [records] if isinstance(records, dict) else records
        created: list[Record] = []
        for record in batch:
            row = dict(record)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", datetime.now(tz=UTC).isoformat())
            self._rows(collection).append(row)
            created.append(copy.deepcopy(row))
        self._save()
        return created

    def update(self, collection: str, filters: Filters, patch: Record) -> None:
        for row in self._rows(collection):
            if _matches(row, filters):
                row.update(patch)
        self._save()

    def delete_where(self, collection: str, filters: Filters) -> None:
        rows = self._rows(collection)
        rows[:] = [r for r in rows if not _matches(r, filters)]
        self._save()
