"""Core type definitions for benchwatch.

This module defines the fundamental data structures recorded for every
benchmark run: the commit it was built from, the measurements it produced,
and the Entry tying them together.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator
from typing_extensions import Self

if TYPE_CHECKING:
    from collections.abc import Mapping

BenchmarkName = str


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class Person(BaseModel):
    """Author or committer identity of a commit.

    Attributes:
        name: Display name.
        email: Email address.
        username: Optional account name on the hosting service.
    """

    model_config = {"frozen": True}

    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    username: str | None = Field(default=None, description="Optional hosting service username")


class CommitRef(BaseModel):
    """Immutable provenance for one Entry.

    Two Entries with the same ``id`` are the same observation.

    Attributes:
        id: Commit identifier, unique within a repository.
        author: Commit author.
        committer: Commit committer.
        message: Commit message.
        timestamp: Commit timestamp (timezone-aware).
        url: Optional web URL of the commit.
        tree_id: Optional tree identifier.
        distinct: Optional push-event flag carried through from CI payloads.

    Example:
        >>> commit = CommitRef(
        ...     id="9cf8e98",
        ...     author=Person(name="dev", email="dev@example.com"),
        ...     committer=Person(name="dev", email="dev@example.com"),
        ...     message="speed up tag parsing",
        ...     timestamp="2020-09-07T18:49:28+02:00",
        ... )
    """

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1, description="Commit identifier")
    author: Person = Field(..., description="Commit author")
    committer: Person = Field(..., description="Commit committer")
    message: str = Field(default="", description="Commit message")
    timestamp: datetime = Field(..., description="Commit timestamp")
    url: str | None = Field(default=None, description="Web URL of the commit")
    tree_id: str | None = Field(default=None, description="Tree identifier")
    distinct: bool | None = Field(default=None, description="Push-event distinct flag")

    @field_validator("timestamp")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        # Naive timestamps from CI payloads are taken as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Measurement(BaseModel):
    """One recorded observation of a benchmark.

    ``dispersion`` is an uncertainty around ``value`` in the same unit,
    not a hard bound.

    Attributes:
        value: Central value (non-negative).
        dispersion: Spread around the value (non-negative).
        unit: Unit of both value and dispersion, e.g. ``ns/iter``.
        extra: Optional free-text annotation from the tool.

    Example:
        >>> Measurement(value=1168, dispersion=3, unit="ns/iter")
        Measurement(value=1168.0, dispersion=3.0, unit='ns/iter', extra=None)
    """

    model_config = {"frozen": True}

    value: float = Field(..., ge=0, allow_inf_nan=False, description="Central value")
    dispersion: float = Field(default=0.0, ge=0, allow_inf_nan=False, description="Spread around the value")
    unit: str = Field(..., min_length=1, description="Unit of value and dispersion")
    extra: str | None = Field(default=None, description="Free-text annotation from the tool")


class Entry(BaseModel):
    """One benchmark run: every measurement produced for one commit.

    Attributes:
        commit: Provenance of the run.
        recorded_at: Epoch milliseconds when the run was appended. This is
            not the commit time; re-runs and CI delays arrive out of order.
        tool: Name of the benchmark tool that produced the run.
        benches: Measurements keyed by benchmark name, in tool output order.
    """

    model_config = {"frozen": True}

    commit: CommitRef = Field(..., description="Commit the run was built from")
    recorded_at: int = Field(..., ge=0, description="Append time in epoch milliseconds")
    tool: str = Field(..., min_length=1, description="Benchmark tool name")
    benches: dict[BenchmarkName, Measurement] = Field(..., description="Measurements by benchmark name")

    @classmethod
    def create(
        cls,
        commit: CommitRef,
        tool: str,
        benches: Mapping[BenchmarkName, Measurement],
        recorded_at: int | None = None,
    ) -> Self:
        """Build an Entry, stamping ``recorded_at`` with the current time if omitted."""
        return cls(
            commit=commit,
            recorded_at=now_ms() if recorded_at is None else recorded_at,
            tool=tool,
            benches=dict(benches),
        )

    @property
    def recorded_datetime(self) -> datetime:
        """``recorded_at`` as an aware UTC datetime."""
        return datetime.fromtimestamp(self.recorded_at / 1000, tz=timezone.utc)
