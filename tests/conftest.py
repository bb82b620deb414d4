"""Shared fixtures: an in-memory store that records every call."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pytest
from helpers import AUTHOR_ID

from kalam.auth import AuthContext, Role
from kalam.errors import StoreError
from kalam.store.base import Filters, Record
from kalam.store.json_store import JsonStore


class RecordingStore(JsonStore):
    """JsonStore that logs (operation, collection) pairs.

    ``fail_on`` makes an operation raise StoreError; ``hold_on`` makes it
    wait for the given event before running.
    """

    def __init__(self, path: Path | None = None) -> None:
        super().__init__(path)
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[tuple[str, str]] = set()
        self.hold_on: dict[tuple[str, str], threading.Event] = {}

    def _record(self, op: str, collection: str) -> None:
        self.calls.append((op, collection))
        gate = self.hold_on.get((op, collection))
        if gate is not None:
            gate.wait(timeout=5)
        if (op, collection) in self.fail_on:
            raise StoreError(f"{op} on {collection} rejected")

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] != "select"]

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
        self._record("select", collection)
        return super().select(
            collection,
            filters,
            in_=in_,
            order=order,
            descending=descending,
            columns=columns,
        )

    def insert(self, collection: str, records: Record | list[Record]) -> list[Record]:
        self._record("insert", collection)
        return super().insert(collection, records)

    def update(self, collection: str, filters: Filters, patch: Record) -> None:
        self._record("update", collection)
        super().update(collection, filters, patch)

    def delete_where(self, collection: str, filters: Filters) -> None:
        self._record("delete", collection)
        super().delete_where(collection, filters)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def writer() -> AuthContext:
    return AuthContext(user_id=AUTHOR_ID, roles={Role.WRITER})


@pytest.fixture
def admin() -> AuthContext:
    return AuthContext(user_id="admin-1", roles={Role.ADMIN})


@pytest.fixture
def reader() -> AuthContext:
    return AuthContext(user_id="reader-1", roles={Role.READER})
