"""Base protocol for history storage backends.

This module defines the HistoryStoreProtocol that all storage backends must implement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from benchwatch.history.models import SuiteHistory


@runtime_checkable
class HistoryStoreProtocol(Protocol):
    """Protocol for history storage backends.

    A store owns every SuiteHistory of the repositories it tracks.
    ``save`` must be atomic with respect to ``load``: a concurrent load sees
    either the whole old state or the whole new state.

    Example:
        >>> class MyStore:
        ...     async def load(self, repository: str, suite: str) -> SuiteHistory: ...
        ...     async def save(self, repository, suite, history, *, expected_revision=None) -> None: ...
        >>> isinstance(MyStore(), HistoryStoreProtocol)
        True
    """

    async def load(self, repository: str, suite: str) -> SuiteHistory:
        """Load the history of a suite.

        Args:
            repository: Repository URL.
            suite: Suite name.

        Returns:
            The stored history, or an empty history if none exists.
        """
        ...

    async def save(
        self,
        repository: str,
        suite: str,
        history: SuiteHistory,
        *,
        expected_revision: str | None = None,
    ) -> None:
        """Atomically replace the stored history of a suite.

        Args:
            repository: Repository URL.
            suite: Suite name.
            history: History to store.
            expected_revision: Revision (see ``history_revision``) the stored
                suite must still have. None skips the check.

        Raises:
            ConcurrentUpdateError: If the stored suite no longer has
                ``expected_revision``. Nothing is written.
            StorageError: If the underlying medium fails.
        """
        ...
