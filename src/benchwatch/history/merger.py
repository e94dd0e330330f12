"""Idempotent insertion of Entries into a SuiteHistory.

The merge is a pure function. Loading and saving around it is the job of
the caller (see ``benchwatch.ingest.Ingestor``).
"""

from __future__ import annotations

import logging

from benchwatch.core.types import Entry
from benchwatch.history.models import MergeOutcome, SuiteHistory

logger = logging.getLogger(__name__)


def merge(history: SuiteHistory, entry: Entry) -> tuple[SuiteHistory, MergeOutcome]:
    """Append an Entry to a history unless its commit is already recorded.

    A commit that is already present (a retried CI job, a re-run) leaves
    the history untouched. Otherwise the Entry goes to the end of the
    sequence regardless of its commit timestamp, and ``last_update``
    becomes its ``recorded_at``. Benchmarks never seen before are accepted.

    Args:
        history: Current history of the suite.
        entry: Entry to insert.

    Returns:
        Tuple of the resulting history and the merge outcome.

    Example:
        >>> history, outcome = merge(history, entry)
        >>> outcome
        <MergeOutcome.APPENDED: 'appended'>
        >>> merge(history, entry)[1]
        <MergeOutcome.DUPLICATE: 'duplicate'>
    """
    if history.find(entry.commit.id) is not None:
        logger.debug(f"Commit {entry.commit.id} already recorded in {history.suite}")
        return history, MergeOutcome.DUPLICATE

    updated = history.model_copy(
        update={
            "entries": (*history.entries, entry),
            "last_update": entry.recorded_at,
        }
    )
    return updated, MergeOutcome.APPENDED
