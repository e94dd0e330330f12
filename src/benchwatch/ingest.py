"""Ingestion pipeline for benchwatch.

This module ties the pieces together for one completed CI run:
normalize the tool output, merge the resulting Entry into the stored
history, and check it for regressions.

The load/merge/save sequence is a read-modify-write on shared state. It is
serialized per (repository, suite) within the process by an asyncio lock,
and guarded across processes by the store's revision check: a save that
finds the suite changed since load fails with ConcurrentUpdateError and
the whole sequence is retried from a fresh load.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import ConcurrentUpdateError, HistoryFormatError, IngestionError, StorageError
from benchwatch.core.types import Entry
from benchwatch.history.codec import canonical_repository, history_revision
from benchwatch.history.merger import merge
from benchwatch.history.models import MergeOutcome, SuiteHistory
from benchwatch.normalizers import ensure_units_consistent, normalize
from benchwatch.regression import DetectionResult, DetectorConfig, RegressionDetector

if TYPE_CHECKING:
    from benchwatch.core.config import Settings
    from benchwatch.core.types import CommitRef
    from benchwatch.history.storage import HistoryStoreProtocol

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Result of ingesting one benchmark run.

    Attributes:
        outcome: APPENDED, or DUPLICATE if the commit was already recorded.
        entry: The recorded Entry. For a duplicate this is the Entry stored
            earlier, not the one just submitted.
        history: History of the suite after the merge.
        detection: Regression verdicts for ``entry``.
        attempts: Number of load/merge/save attempts used.
    """

    outcome: MergeOutcome
    entry: Entry
    history: SuiteHistory
    detection: DetectionResult
    attempts: int = 1

    @property
    def has_regressions(self) -> bool:
        """Check if the recorded entry regressed."""
        return self.detection.has_regressions


class Ingestor:
    """Run the normalize -> merge -> save -> detect pipeline against a store.

    Example:
        >>> ingestor = Ingestor(JSONFileStore(".benchwatch"), DetectorConfig(regression_threshold=0.1))
        >>> result = await ingestor.ingest(repo_url, "Benchmark", "cargo", output, commit)
        >>> if result.has_regressions:
        ...     print(result.detection.summary())
    """

    def __init__(
        self,
        store: HistoryStoreProtocol,
        config: DetectorConfig,
        *,
        max_retries: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        """Initialize the ingestor.

        Args:
            store: History store.
            config: Detector configuration.
            max_retries: Retries of the load/merge/save sequence after a
                storage failure or concurrent update.
            retry_delay: Delay in seconds between retries.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._store = store
        self._detector = RegressionDetector(config)
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    @classmethod
    def from_settings(cls, settings: Settings, store: HistoryStoreProtocol | None = None) -> Ingestor:
        """Build an ingestor from application settings.

        Args:
            settings: Application settings.
            store: Store to use (default: JSONFileStore under ``settings.store_dir``).
        """
        if store is None:
            from benchwatch.history.storage import JSONFileStore

            store = JSONFileStore(
                settings.store_dir,
                max_entries=settings.max_entries,
                lock_timeout=settings.lock_timeout_seconds,
            )
        return cls(
            store,
            DetectorConfig(regression_threshold=settings.regression_threshold),
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
        )

    @asynccontextmanager
    async def _serialized(self, repository: str, suite: str) -> AsyncIterator[None]:
        """Hold the lock of a (repository, suite) key, dropping it once unused."""
        key = (canonical_repository(repository), suite)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def ingest(
        self,
        repository: str,
        suite: str,
        tool: str,
        raw_output: str | bytes,
        commit: CommitRef,
        recorded_at: int | None = None,
    ) -> IngestResult:
        """Ingest the raw output of one benchmark run.

        Args:
            repository: Repository URL.
            suite: Suite name.
            tool: Benchmark tool that produced the output.
            raw_output: Raw tool output.
            commit: Commit the run was built from.
            recorded_at: Append time in epoch ms (default: now).

        Returns:
            IngestResult with merge outcome and regression verdicts.

        Raises:
            UnsupportedToolError: If the tool is unknown.
            NormalizationError: If the output is malformed, empty, or uses
                a unit that differs from the history. Nothing is stored.
            IngestionError: If the store kept failing after all retries.
        """
        measurements = normalize(raw_output, tool)
        entry = Entry.create(commit, tool, measurements, recorded_at)
        return await self.ingest_entry(repository, suite, entry)

    async def ingest_entry(self, repository: str, suite: str, entry: Entry) -> IngestResult:
        """Merge an already built Entry and check it for regressions.

        Args:
            repository: Repository URL.
            suite: Suite name.
            entry: Entry to record.

        Returns:
            IngestResult with merge outcome and regression verdicts.
        """
        async with self._serialized(repository, suite):
            history, outcome, attempts = await self._merge_with_retry(repository, suite, entry)

        recorded = history.find(entry.commit.id) or entry
        if outcome is MergeOutcome.DUPLICATE:
            logger.info(f"Commit {entry.commit.id} already recorded in {repository} [{suite}], not appended")
        else:
            logger.info(f"Appended {entry.commit.id} to {repository} [{suite}] ({len(history)} entries)")

        detection = self._detector.analyze(history, recorded)
        return IngestResult(
            outcome=outcome,
            entry=recorded,
            history=history,
            detection=detection,
            attempts=attempts,
        )

    async def _merge_with_retry(
        self,
        repository: str,
        suite: str,
        entry: Entry,
    ) -> tuple[SuiteHistory, MergeOutcome, int]:
        """Run load -> merge -> save, restarting from a fresh load on storage failures."""
        last_error: StorageError | None = None
        attempts = self._max_retries + 1

        for attempt in range(attempts):
            try:
                history = await self._store.load(repository, suite)
                merged, outcome = merge(history, entry)
                if outcome is MergeOutcome.DUPLICATE:
                    return merged, outcome, attempt + 1

                ensure_units_consistent(entry.benches, history)
                await self._store.save(
                    repository,
                    suite,
                    merged,
                    expected_revision=history_revision(history),
                )
                return merged, outcome, attempt + 1

            except HistoryFormatError:
                raise

            except ConcurrentUpdateError as e:
                last_error = e
                logger.info(f"Concurrent update of {repository} [{suite}], retrying ({attempt + 1}/{attempts})")

            except StorageError as e:
                last_error = e
                logger.warning(f"Storage error for {repository} [{suite}] ({attempt + 1}/{attempts}): {e}")

            if attempt < attempts - 1 and self._retry_delay > 0:
                await asyncio.sleep(self._retry_delay)

        raise IngestionError(
            f"Failed to record {entry.commit.id} in {repository} [{suite}] after {attempts} attempts"
        ) from last_error

    async def check(
        self,
        repository: str,
        suite: str,
        commit_id: str | None = None,
    ) -> DetectionResult | None:
        """Re-run detection for a stored entry without modifying the history.

        Args:
            repository: Repository URL.
            suite: Suite name.
            commit_id: Commit to check (default: the most recently appended).

        Returns:
            DetectionResult, or None if the history is empty or lacks the commit.
        """
        history = await self._store.load(repository, suite)
        entry = history.find(commit_id) if commit_id is not None else history.latest
        if entry is None:
            return None
        return self._detector.analyze(history, entry)
