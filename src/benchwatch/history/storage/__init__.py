"""Storage backends for benchmark histories.

This module provides the storage protocol and implementations for
persisting suite histories.

Example:
    >>> from benchwatch.history.storage import JSONFileStore
    >>> store = JSONFileStore(".benchwatch")
    >>> history = await store.load("https://github.com/acme/parser", "Benchmark")
"""

from __future__ import annotations

from benchwatch.history.storage.base import HistoryStoreProtocol
from benchwatch.history.storage.json_store import JSONFileStore, repository_slug
from benchwatch.history.storage.memory import MemoryHistoryStore

__all__ = [
    "HistoryStoreProtocol",
    "JSONFileStore",
    "MemoryHistoryStore",
    "repository_slug",
]
