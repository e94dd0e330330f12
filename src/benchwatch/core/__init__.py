"""Core module for benchwatch.

This module contains the data model, configuration and exceptions
shared by the normalizers, the history store and the detector.
"""

from __future__ import annotations

from benchwatch.core.config import Settings
from benchwatch.core.exceptions import (
    BenchwatchError,
    ConcurrentUpdateError,
    ConfigurationError,
    EmptyResultError,
    HistoryFormatError,
    IngestionError,
    MalformedOutputError,
    NormalizationError,
    StorageError,
    UnitMismatchError,
    UnsupportedToolError,
)
from benchwatch.core.types import BenchmarkName, CommitRef, Entry, Measurement, Person

__all__ = [
    # Types
    "BenchmarkName",
    "CommitRef",
    "Entry",
    "Measurement",
    "Person",
    # Config
    "Settings",
    # Exceptions
    "BenchwatchError",
    "ConcurrentUpdateError",
    "ConfigurationError",
    "EmptyResultError",
    "HistoryFormatError",
    "IngestionError",
    "MalformedOutputError",
    "NormalizationError",
    "StorageError",
    "UnitMismatchError",
    "UnsupportedToolError",
]
