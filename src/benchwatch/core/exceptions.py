"""Custom exceptions for benchwatch.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchwatchError for easy catching.

Not everything unusual is an error: a duplicate commit is reported as
``MergeOutcome.DUPLICATE`` and a benchmark without a baseline gets the
``Verdict.INSUFFICIENT_HISTORY`` verdict.
"""

from __future__ import annotations


class BenchwatchError(Exception):
    """Base exception for all benchwatch errors.

    Example:
        >>> try:
        ...     await ingestor.ingest(...)
        ... except BenchwatchError as e:
        ...     print(f"benchwatch error: {e}")
    """


class ConfigurationError(BenchwatchError):
    """Raised when configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError("regression_threshold must be >= 0, got -0.1")
    """


class UnsupportedToolError(ConfigurationError):
    """Raised when no normalizer is registered for a benchmark tool name."""

    def __init__(self, tool: str, available: list[str] | None = None) -> None:
        """Initialize UnsupportedToolError.

        Args:
            tool: The requested tool name.
            available: Tool names that are registered.
        """
        self.tool = tool
        self.available = available or []
        msg = f"Unsupported benchmark tool: {tool!r}"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class NormalizationError(BenchwatchError):
    """Base class for errors raised while normalizing tool output.

    Any NormalizationError aborts ingestion of the run. Nothing is merged.
    """


class MalformedOutputError(NormalizationError):
    """Raised when raw benchmark output cannot be parsed.

    Example:
        >>> raise MalformedOutputError("pytest: invalid JSON at line 1 column 2")
    """


class EmptyResultError(NormalizationError):
    """Raised when raw benchmark output parses but contains zero benchmarks."""


class UnitMismatchError(NormalizationError):
    """Raised when a benchmark is reported in a different unit than its history.

    Units are never coerced: the caller has to fix the producer or start
    a new suite.
    """

    def __init__(self, name: str, expected: str, actual: str) -> None:
        """Initialize UnitMismatchError.

        Args:
            name: Benchmark name.
            expected: Unit recorded in the history.
            actual: Unit reported by the new run.
        """
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"Unit mismatch for benchmark {name!r}: history uses {expected!r}, run reported {actual!r}")


class StorageError(BenchwatchError):
    """Raised when the history store cannot be read or written."""


class HistoryFormatError(StorageError):
    """Raised when a persisted history document is malformed."""


class ConcurrentUpdateError(StorageError):
    """Raised when a suite changed between load and save.

    The caller must restart its load/merge/save sequence from a fresh load.
    """

    def __init__(self, repository: str, suite: str) -> None:
        """Initialize ConcurrentUpdateError.

        Args:
            repository: Repository URL of the suite.
            suite: Suite name.
        """
        self.repository = repository
        self.suite = suite
        super().__init__(f"History for {repository} [{suite}] was modified concurrently")


class IngestionError(BenchwatchError):
    """Raised when ingestion fails after exhausting the retry budget.

    The last underlying storage error is available as ``__cause__``.
    """
