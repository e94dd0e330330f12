"""Unit tests for SuiteHistory and the merger."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from benchwatch.core.types import CommitRef, Entry, Measurement, Person
from benchwatch.history import MergeOutcome, SuiteHistory, merge

REPO = "https://github.com/acme/parser"


def make_entry(commit_id: str, recorded_at: int, hour: int = 12, unit: str = "ns/iter", **values: float) -> Entry:
    """Create a test entry."""
    person = Person(name="dev", email="dev@example.com")
    commit = CommitRef(
        id=commit_id,
        author=person,
        committer=person,
        timestamp=datetime(2024, 1, 15, hour, tzinfo=timezone.utc),
    )
    benches = {name: Measurement(value=value, unit=unit) for name, value in (values or {"bench": 100}).items()}
    return Entry.create(commit, "cargo", benches, recorded_at=recorded_at)


def build_history(*entries: Entry) -> SuiteHistory:
    """Merge entries into an empty history."""
    history = SuiteHistory.empty(REPO, "Benchmark")
    for entry in entries:
        history, _ = merge(history, entry)
    return history


class TestMerge:
    """Tests for merge."""

    def test_append_to_empty(self) -> None:
        """Test merging into an empty history appends."""
        entry = make_entry("a", 1000)

        history, outcome = merge(SuiteHistory.empty(REPO, "Benchmark"), entry)

        assert outcome is MergeOutcome.APPENDED
        assert history.entries == (entry,)
        assert history.last_update == 1000

    def test_duplicate_is_noop(self) -> None:
        """Test merging a known commit returns the history unchanged."""
        history = build_history(make_entry("a", 1000))
        retry = make_entry("a", 5000, bench=999)

        merged, outcome = merge(history, retry)

        assert outcome is MergeOutcome.DUPLICATE
        assert merged is history
        assert merged.entries[0].benches["bench"].value == 100
        assert merged.last_update == 1000

    def test_merge_is_idempotent(self) -> None:
        """Test merging the same entry twice equals merging once."""
        entry = make_entry("a", 1000)
        once, _ = merge(SuiteHistory.empty(REPO, "Benchmark"), entry)
        twice, _ = merge(once, entry)

        assert twice == once

    def test_arrival_order_kept(self) -> None:
        """Test entries are appended regardless of commit time."""
        late_commit = make_entry("newer", 1000, hour=18)
        early_commit = make_entry("older", 2000, hour=6)

        history = build_history(late_commit, early_commit)

        assert history.commit_ids() == ["newer", "older"]
        assert [entry.commit.id for entry in history.sorted_by_commit_time()] == ["older", "newer"]
        assert history.commit_ids() == ["newer", "older"]

    def test_last_update_follows_recorded_at(self) -> None:
        """Test last_update is the recorded_at of the last append."""
        history = build_history(make_entry("a", 1000), make_entry("b", 3000))

        assert history.last_update == 3000

    def test_original_history_unchanged(self) -> None:
        """Test merge does not modify its input."""
        history = build_history(make_entry("a", 1000))

        merge(history, make_entry("b", 2000))

        assert history.commit_ids() == ["a"]

    def test_new_benchmarks_accepted(self) -> None:
        """Test entries may introduce new benchmark names."""
        history = build_history(make_entry("a", 1000, parse=1), make_entry("b", 2000, parse=1, render=2))

        assert history.benchmark_names() == ["parse", "render"]


class TestSuiteHistory:
    """Tests for SuiteHistory."""

    def test_empty(self) -> None:
        """Test empty history."""
        history = SuiteHistory.empty(REPO, "Benchmark")

        assert len(history) == 0
        assert history.latest is None
        assert history.last_update is None
        assert list(history) == []

    def test_latest_and_find(self) -> None:
        """Test latest and lookup by commit id."""
        first, second = make_entry("a", 1000), make_entry("b", 2000)
        history = build_history(first, second)

        assert history.latest == second
        assert history.find("a") == first
        assert history.find("missing") is None

    def test_units_most_recent(self) -> None:
        """Test units reports the latest recorded unit per benchmark."""
        history = build_history(make_entry("a", 1000, unit="ns/iter"), make_entry("b", 2000, unit="us/iter"))

        assert history.units() == {"bench": "us/iter"}

    def test_stable_sort_for_equal_commit_times(self) -> None:
        """Test equal commit times keep arrival order."""
        history = build_history(make_entry("x", 1), make_entry("y", 2), make_entry("z", 3))

        assert [entry.commit.id for entry in history.sorted_by_commit_time()] == ["x", "y", "z"]

    def test_frozen(self) -> None:
        """Test histories are immutable."""
        history = SuiteHistory.empty(REPO, "Benchmark")
        with pytest.raises(ValidationError):
            history.suite = "Other"  # type: ignore[misc]

    def test_duplicate_commits_rejected(self) -> None:
        """Test a history cannot hold the same commit twice."""
        entry = make_entry("a", 1000)

        with pytest.raises(ValidationError, match="more than once"):
            SuiteHistory(repository=REPO, suite="Benchmark", entries=(entry, entry))
