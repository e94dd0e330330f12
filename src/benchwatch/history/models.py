"""Models for benchmark history.

This module provides SuiteHistory, the ordered collection of Entries
recorded for one benchmark suite of one repository, and MergeOutcome.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

from benchwatch.core.types import BenchmarkName, Entry

if TYPE_CHECKING:
    from collections.abc import Iterator


class MergeOutcome(str, Enum):
    """Result of merging an Entry into a SuiteHistory."""

    APPENDED = "appended"
    DUPLICATE = "duplicate"


class SuiteHistory(BaseModel):
    """Ordered Entries of one (repository, suite) pair.

    Entries are kept in arrival order, which is not necessarily commit
    order: CI runs can finish out of order. Use ``sorted_by_commit_time``
    when chronological order matters.

    Attributes:
        repository: Repository URL.
        suite: Suite name.
        entries: Entries in arrival order.
        last_update: ``recorded_at`` of the most recently appended Entry,
            None for an empty history.

    Example:
        >>> history = SuiteHistory.empty("https://github.com/acme/parser", "Benchmark")
        >>> len(history)
        0
    """

    model_config = {"frozen": True}

    repository: str = Field(..., description="Repository URL")
    suite: str = Field(..., min_length=1, description="Suite name")
    entries: tuple[Entry, ...] = Field(default=(), description="Entries in arrival order")
    last_update: int | None = Field(default=None, description="Most recent append in epoch milliseconds")

    @model_validator(mode="after")
    def _check_unique_commits(self) -> Self:
        ids = [entry.commit.id for entry in self.entries]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Suite {self.suite!r} records a commit more than once")
        return self

    @classmethod
    def empty(cls, repository: str, suite: str) -> Self:
        """Create a history with no entries."""
        return cls(repository=repository, suite=suite)

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:  # type: ignore[override]
        """Iterate over entries in arrival order."""
        return iter(self.entries)

    @property
    def latest(self) -> Entry | None:
        """The most recently appended Entry, or None."""
        return self.entries[-1] if self.entries else None

    def find(self, commit_id: str) -> Entry | None:
        """Get the Entry recorded for a commit id.

        Args:
            commit_id: Commit identifier.

        Returns:
            The Entry if present, None otherwise.
        """
        for entry in self.entries:
            if entry.commit.id == commit_id:
                return entry
        return None

    def commit_ids(self) -> list[str]:
        """Commit ids in arrival order."""
        return [entry.commit.id for entry in self.entries]

    def benchmark_names(self) -> list[BenchmarkName]:
        """All benchmark names, in order of first appearance."""
        names: dict[BenchmarkName, None] = {}
        for entry in self.entries:
            for name in entry.benches:
                names.setdefault(name, None)
        return list(names)

    def units(self) -> dict[BenchmarkName, str]:
        """Unit of each benchmark as most recently recorded."""
        units: dict[BenchmarkName, str] = {}
        for entry in self.entries:
            for name, measurement in entry.benches.items():
                units[name] = measurement.unit
        return units

    def sorted_by_commit_time(self) -> list[Entry]:
        """Entries sorted by commit timestamp.

        The sort is stable, so entries with equal commit times keep their
        arrival order. The history itself is not modified.
        """
        return sorted(self.entries, key=lambda entry: entry.commit.timestamp)
