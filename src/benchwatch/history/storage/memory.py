"""In-memory history store."""

from __future__ import annotations

from benchwatch.core.exceptions import ConcurrentUpdateError
from benchwatch.history.codec import canonical_repository, history_revision
from benchwatch.history.models import SuiteHistory


class MemoryHistoryStore:
    """In-memory history store.

    Simple dictionary-based store. Data is lost when the process exits.
    Histories are immutable, so handing out the stored instance is safe.

    Example:
        >>> store = MemoryHistoryStore()
        >>> history = await store.load("https://github.com/acme/parser", "Benchmark")
        >>> len(history)
        0
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._histories: dict[tuple[str, str], SuiteHistory] = {}
        self.save_count = 0

    @staticmethod
    def _key(repository: str, suite: str) -> tuple[str, str]:
        return canonical_repository(repository), suite

    async def load(self, repository: str, suite: str) -> SuiteHistory:
        """Load the history of a suite, empty if none exists."""
        stored = self._histories.get(self._key(repository, suite))
        if stored is None:
            return SuiteHistory.empty(repository, suite)
        return stored

    async def save(
        self,
        repository: str,
        suite: str,
        history: SuiteHistory,
        *,
        expected_revision: str | None = None,
    ) -> None:
        """Replace the history of a suite, checking the revision if given."""
        key = self._key(repository, suite)
        if expected_revision is not None:
            current = self._histories.get(key, SuiteHistory.empty(repository, suite))
            if history_revision(current) != expected_revision:
                raise ConcurrentUpdateError(repository, suite)

        self._histories[key] = history
        self.save_count += 1

    def __len__(self) -> int:
        """Return the number of stored suites."""
        return len(self._histories)
