"""JSON file storage for benchmark histories.

This module provides a file-based storage backend writing one
github-action-benchmark compatible document per repository.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from benchwatch.core.exceptions import ConcurrentUpdateError, StorageError
from benchwatch.history.codec import (
    canonical_repository,
    document_with_history,
    dumps_document,
    history_from_document,
    history_revision,
    loads_document,
)
from benchwatch.history.models import SuiteHistory

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^A-Za-z0-9._-]+")


def repository_slug(repository: str) -> str:
    """Directory name for a repository URL.

    Example:
        >>> repository_slug("https://github.com/MoBlaa/irc_rust")
        'github.com_MoBlaa_irc_rust'
    """
    url = canonical_repository(repository)
    url = re.sub(r"^[A-Za-z][A-Za-z0-9+.-]*://", "", url)
    slug = _SLUG_RE.sub("_", url).strip("_.")
    if not slug:
        raise ValueError(f"Cannot derive a storage path from repository {repository!r}")
    return slug


class JSONFileStore:
    """JSON file storage for benchmark histories.

    Each repository gets ``<root>/<slug>/data.js`` holding all of its
    suites. Writes use a temp file + rename, so readers never observe a
    partial document. The read-compare-write section of ``save`` runs under
    a cross-process file lock.

    Supports max_entries retention, keeping the newest entries of a suite.

    Example:
        >>> store = JSONFileStore(".benchwatch")
        >>> history = await store.load("https://github.com/acme/parser", "Benchmark")
        >>> await store.save("https://github.com/acme/parser", "Benchmark", history)
    """

    def __init__(
        self,
        root: str | Path = ".benchwatch",
        *,
        js_wrapper: bool = True,
        max_entries: int | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        """Initialize the JSON file store.

        Args:
            root: Directory holding one subdirectory per repository.
            js_wrapper: Write ``data.js`` (script form) instead of ``data.json``.
            max_entries: Maximum entries kept per suite (None = unlimited).
            lock_timeout: Seconds to wait for the store lock.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._root = Path(root)
        self._js_wrapper = js_wrapper
        self._max_entries = max_entries
        self._lock_timeout = lock_timeout

    def path_for(self, repository: str) -> Path:
        """Path of the document holding a repository's suites."""
        filename = "data.js" if self._js_wrapper else "data.json"
        return self._root / repository_slug(repository) / filename

    def _read(self, path: Path) -> dict[str, Any] | None:
        """Read a document, None if it does not exist or is empty."""
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        if not content.strip():
            return None
        return loads_document(content)

    def _write(self, path: Path, document: dict[str, Any]) -> None:
        """Write a document with atomic replace.

        Args:
            path: Target path.
            document: Document to write.
        """
        content = dumps_document(document, js_wrapper=self._js_wrapper)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=".data_",
                suffix=".tmp",
            )
        except OSError as e:
            raise StorageError(f"Failed to prepare write of {path}: {e}") from e

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            Path(temp_path).replace(path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}") from e

    def _apply_retention(self, history: SuiteHistory) -> SuiteHistory:
        """Drop the oldest entries (by arrival) beyond max_entries."""
        if self._max_entries is None or len(history) <= self._max_entries:
            return history

        dropped = len(history) - self._max_entries
        logger.info(f"Retention: dropping {dropped} oldest entries of {history.suite}")
        return history.model_copy(update={"entries": history.entries[-self._max_entries :]})

    async def load(self, repository: str, suite: str) -> SuiteHistory:
        """Load the history of a suite.

        Args:
            repository: Repository URL.
            suite: Suite name.

        Returns:
            The stored history, or an empty history if none exists.

        Raises:
            HistoryFormatError: If the stored document is malformed.
            StorageError: If the document cannot be read.
        """
        document = self._read(self.path_for(repository))
        if document is None:
            return SuiteHistory.empty(repository, suite)
        return history_from_document(document, repository, suite)

    async def save(
        self,
        repository: str,
        suite: str,
        history: SuiteHistory,
        *,
        expected_revision: str | None = None,
    ) -> None:
        """Atomically replace the stored history of a suite.

        Other suites of the same repository are left untouched.

        Args:
            repository: Repository URL.
            suite: Suite name.
            history: History to store.
            expected_revision: Revision the stored suite must still have.

        Raises:
            ValueError: If the history belongs to another repository or suite.
            ConcurrentUpdateError: If the stored suite changed since load.
            StorageError: If the lock or the write fails.
        """
        if history.suite != suite or canonical_repository(history.repository) != canonical_repository(repository):
            raise ValueError(f"History of {history.repository} [{history.suite}] cannot be saved as {repository} [{suite}]")

        path = self.path_for(repository)
        history = self._apply_retention(history)
        await asyncio.to_thread(self._locked_write, path, history, expected_revision)

        logger.debug(f"Saved {len(history)} entries of {suite} to {path}")

    def _locked_write(self, path: Path, history: SuiteHistory, expected_revision: str | None) -> None:
        """Compare the stored revision and write the document under the file lock."""
        lock = FileLock(f"{path}.lock", timeout=self._lock_timeout)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with lock:
                document = self._read(path)
                if expected_revision is not None:
                    if document is None:
                        current = SuiteHistory.empty(history.repository, history.suite)
                    else:
                        current = history_from_document(document, history.repository, history.suite)
                    if history_revision(current) != expected_revision:
                        raise ConcurrentUpdateError(history.repository, history.suite)

                self._write(path, document_with_history(document, history))
        except Timeout as e:
            raise StorageError(f"Timed out after {self._lock_timeout}s waiting for lock on {path}") from e
        except OSError as e:
            raise StorageError(f"Failed to save {path}: {e}") from e
