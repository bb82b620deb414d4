"""Data store contract and its implementations."""

from kalam.store.base import DataStore
from kalam.store.json_store import JsonStore

__all__ = ["DataStore", "JsonStore"]
