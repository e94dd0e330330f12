"""Benchmark history module for benchwatch.

This module provides the SuiteHistory model, the pure Merger, the
persisted document codec and the storage backends.

Example:
    >>> from benchwatch.history import JSONFileStore, merge
    >>>
    >>> store = JSONFileStore(".benchwatch")
    >>> history = await store.load(repo_url, "Benchmark")
    >>> history, outcome = merge(history, entry)
"""

from __future__ import annotations

from benchwatch.history.codec import (
    format_range,
    history_from_document,
    history_revision,
    history_to_document,
    parse_range,
)
from benchwatch.history.merger import merge
from benchwatch.history.models import MergeOutcome, SuiteHistory
from benchwatch.history.storage import HistoryStoreProtocol, JSONFileStore, MemoryHistoryStore

__all__ = [
    "HistoryStoreProtocol",
    "JSONFileStore",
    "MemoryHistoryStore",
    "MergeOutcome",
    "SuiteHistory",
    "format_range",
    "history_from_document",
    "history_revision",
    "history_to_document",
    "merge",
    "parse_range",
]
