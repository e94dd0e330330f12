"""Unit tests for the history document codec."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from benchwatch.core.exceptions import HistoryFormatError
from benchwatch.core.types import CommitRef, Entry, Measurement, Person
from benchwatch.history.codec import (
    JS_PREFIX,
    canonical_repository,
    document_with_history,
    dumps_document,
    entry_from_dict,
    entry_to_dict,
    format_range,
    history_from_document,
    history_revision,
    history_to_document,
    loads_document,
    parse_range,
)
from benchwatch.history.merger import merge
from benchwatch.history.models import SuiteHistory

REPO = "https://github.com/MoBlaa/irc_rust"

# A document as written by github-action-benchmark
LEGACY_DOCUMENT = """window.BENCHMARK_DATA = {
  "lastUpdate": 1599497467150,
  "repoUrl": "https://github.com/MoBlaa/irc_rust",
  "entries": {
    "Benchmark": [
      {
        "commit": {
          "author": {"email": "moblaa@example.com", "name": "MoBlaa", "username": "MoBlaa"},
          "committer": {"email": "noreply@github.com", "name": "GitHub", "username": "web-flow"},
          "distinct": true,
          "id": "9cf8e98",
          "message": "Merge pull request #42",
          "timestamp": "2020-09-07T18:49:28+02:00",
          "tree_id": "c4f0d9a",
          "url": "https://github.com/MoBlaa/irc_rust/commit/9cf8e98"
        },
        "date": 1599497466782,
        "tool": "cargo",
        "benches": [
          {"name": "bench_parse", "value": 1168, "range": "± 3", "unit": "ns/iter"},
          {"name": "bench_tag_parse", "value": 2149, "range": "± 49", "unit": "ns/iter"}
        ]
      }
    ]
  }
}
"""


def make_commit(commit_id: str, hour: int = 12) -> CommitRef:
    """Create a test commit."""
    person = Person(name="dev", email="dev@example.com")
    return CommitRef(
        id=commit_id,
        author=person,
        committer=person,
        message=f"commit {commit_id}",
        timestamp=datetime(2020, 9, 7, hour, tzinfo=timezone.utc),
    )


def make_entry(commit_id: str, recorded_at: int, **values: float) -> Entry:
    """Create a test entry with one ns/iter benchmark per keyword."""
    benches = {name: Measurement(value=value, dispersion=2.5, unit="ns/iter") for name, value in values.items()}
    return Entry.create(make_commit(commit_id), "cargo", benches, recorded_at=recorded_at)


# ============================================================================
# Range Tests
# ============================================================================


class TestRange:
    """Tests for range display strings."""

    def test_format_integral(self) -> None:
        """Test integral dispersions render without a fraction."""
        assert format_range(3.0) == "± 3"

    def test_format_fraction(self) -> None:
        """Test fractional dispersions keep their digits."""
        assert format_range(0.25) == "± 0.25"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("± 3", 3.0),
            ("±3", 3.0),
            ("+/- 49", 49.0),
            ("+- 1.5", 1.5),
            ("stddev: 0.01", 0.01),
            ("± 1,024", 1024.0),
            ("7", 7.0),
            ("", 0.0),
            ("   ", 0.0),
        ],
    )
    def test_parse_absolute(self, text: str, expected: float) -> None:
        """Test absolute range forms."""
        assert parse_range(text) == pytest.approx(expected)

    def test_parse_none(self) -> None:
        """Test a missing range means no dispersion."""
        assert parse_range(None) == 0.0

    def test_parse_relative(self) -> None:
        """Test percentage ranges are relative to the value."""
        assert parse_range("±2%", value=200) == pytest.approx(4.0)
        assert parse_range("± 1.12%", value=11465) == pytest.approx(128.408)

    def test_parse_relative_needs_value(self) -> None:
        """Test percentage ranges without a value are rejected."""
        with pytest.raises(ValueError, match="needs a value"):
            parse_range("±2%")

    def test_parse_garbage(self) -> None:
        """Test unparseable ranges are rejected."""
        with pytest.raises(ValueError, match="Unrecognized range"):
            parse_range("about three")

    def test_format_parse_round_trip(self) -> None:
        """Test formatted ranges parse back to the same number."""
        for dispersion in (0.0, 3.0, 0.125, 1234.5):
            assert parse_range(format_range(dispersion)) == dispersion


class TestCanonicalRepository:
    """Tests for repository URL normalization."""

    def test_strips_trailing_slash_and_git(self) -> None:
        """Test trailing slash and .git are ignored."""
        assert canonical_repository(f"{REPO}/") == REPO
        assert canonical_repository(f"{REPO}.git") == REPO
        assert canonical_repository(REPO) == REPO


# ============================================================================
# Entry Tests
# ============================================================================


class TestEntrySerialization:
    """Tests for entry serialization."""

    def test_to_dict_shape(self) -> None:
        """Test persisted entry layout."""
        entry = make_entry("abc", 1599497466782, bench_parse=1168)

        data = entry_to_dict(entry)

        assert data["date"] == 1599497466782
        assert data["tool"] == "cargo"
        assert data["commit"]["id"] == "abc"
        assert data["benches"] == [{"name": "bench_parse", "value": 1168, "range": "± 2.5", "unit": "ns/iter"}]
        assert isinstance(data["benches"][0]["value"], int)

    def test_optional_commit_fields_omitted(self) -> None:
        """Test unset optional commit fields are not written."""
        data = entry_to_dict(make_entry("abc", 1, bench=1))

        assert "url" not in data["commit"]
        assert "tree_id" not in data["commit"]
        assert "distinct" not in data["commit"]
        assert "username" not in data["commit"]["author"]

    def test_extra_written_when_present(self) -> None:
        """Test extra annotations are persisted."""
        entry = Entry.create(
            make_commit("abc"),
            "go",
            {"BenchmarkFib10": Measurement(value=325, unit="ns/op", extra="5000000 times\n8 procs")},
            recorded_at=1,
        )

        assert entry_to_dict(entry)["benches"][0]["extra"] == "5000000 times\n8 procs"

    def test_round_trip(self) -> None:
        """Test entries survive serialization unchanged."""
        entry = make_entry("abc", 1599497466782, zeta=0.5, alpha=1168)

        assert entry_from_dict(json.loads(json.dumps(entry_to_dict(entry)))) == entry

    def test_from_dict_missing_field(self) -> None:
        """Test missing fields raise HistoryFormatError."""
        data = entry_to_dict(make_entry("abc", 1, bench=1))
        del data["date"]

        with pytest.raises(HistoryFormatError, match="missing field"):
            entry_from_dict(data)

    def test_from_dict_non_numeric_value(self) -> None:
        """Test non-numeric values are rejected."""
        data = entry_to_dict(make_entry("abc", 1, bench=1))
        data["benches"][0]["value"] = "fast"

        with pytest.raises(HistoryFormatError, match="non-numeric"):
            entry_from_dict(data)

    def test_from_dict_bad_range(self) -> None:
        """Test unparseable ranges are rejected."""
        data = entry_to_dict(make_entry("abc", 1, bench=1))
        data["benches"][0]["range"] = "wide"

        with pytest.raises(HistoryFormatError):
            entry_from_dict(data)

    def test_from_dict_duplicate_bench(self) -> None:
        """Test duplicate benchmark names are rejected."""
        data = entry_to_dict(make_entry("abc", 1, bench=1))
        data["benches"].append(dict(data["benches"][0]))

        with pytest.raises(HistoryFormatError, match="Duplicate benchmark"):
            entry_from_dict(data)

    def test_from_dict_not_an_object(self) -> None:
        """Test non-object entries are rejected."""
        with pytest.raises(HistoryFormatError):
            entry_from_dict(["not", "an", "entry"])


# ============================================================================
# Document Tests
# ============================================================================


class TestDocuments:
    """Tests for whole history documents."""

    def test_load_legacy_document(self) -> None:
        """Test documents written by github-action-benchmark load as-is."""
        history = history_from_document(loads_document(LEGACY_DOCUMENT), REPO, "Benchmark")

        assert len(history) == 1
        entry = history.entries[0]
        assert entry.commit.id == "9cf8e98"
        assert entry.commit.distinct is True
        assert entry.commit.tree_id == "c4f0d9a"
        assert entry.benches["bench_tag_parse"] == Measurement(value=2149, dispersion=49, unit="ns/iter")
        assert history.last_update == 1599497466782

    def test_legacy_document_survives_rewrite(self) -> None:
        """Test re-serializing a legacy document keeps every field."""
        document = loads_document(LEGACY_DOCUMENT)
        history = history_from_document(document, REPO, "Benchmark")

        rewritten = document_with_history(document, history)

        assert rewritten["entries"]["Benchmark"] == document["entries"]["Benchmark"]

    def test_missing_suite_is_empty(self) -> None:
        """Test an absent suite yields an empty history."""
        history = history_from_document(loads_document(LEGACY_DOCUMENT), REPO, "Other")

        assert len(history) == 0
        assert history.last_update is None

    def test_other_repository_rejected(self) -> None:
        """Test a document of another repository is rejected."""
        with pytest.raises(HistoryFormatError, match="belongs to"):
            history_from_document(loads_document(LEGACY_DOCUMENT), "https://github.com/acme/other", "Benchmark")

    def test_equivalent_repository_url_accepted(self) -> None:
        """Test .git and trailing slash variants match the stored URL."""
        history = history_from_document(loads_document(LEGACY_DOCUMENT), f"{REPO}.git", "Benchmark")

        assert len(history) == 1

    def test_duplicate_commit_rejected(self) -> None:
        """Test a suite recording a commit twice is rejected."""
        document = loads_document(LEGACY_DOCUMENT)
        suite = document["entries"]["Benchmark"]
        suite.append(suite[0])

        with pytest.raises(HistoryFormatError, match="recorded twice"):
            history_from_document(document, REPO, "Benchmark")

    def test_replace_keeps_other_suites(self) -> None:
        """Test writing one suite leaves the others untouched."""
        document = loads_document(LEGACY_DOCUMENT)
        other, _ = merge(SuiteHistory.empty(REPO, "Parser"), make_entry("def", 1599500000000, bench=1))

        updated = document_with_history(document, other)

        assert set(updated["entries"]) == {"Benchmark", "Parser"}
        assert updated["entries"]["Benchmark"] == document["entries"]["Benchmark"]
        assert updated["lastUpdate"] == 1599500000000

    def test_last_update_is_newest_date(self) -> None:
        """Test lastUpdate is the newest date across suites."""
        document = loads_document(LEGACY_DOCUMENT)
        older, _ = merge(SuiteHistory.empty(REPO, "Parser"), make_entry("def", 1000, bench=1))

        assert document_with_history(document, older)["lastUpdate"] == 1599497466782

    @pytest.mark.parametrize(
        "raw_suite",
        [[{"tool": "cargo"}], ["not an entry"], [{"date": "1599497466782"}], [{"date": True}], {"date": 1}],
    )
    def test_malformed_other_suite_rejected(self, raw_suite: object) -> None:
        """Test an unreadable neighbouring suite raises HistoryFormatError naming it."""
        document = {"repoUrl": REPO, "entries": {"Other": raw_suite}}
        history, _ = merge(SuiteHistory.empty(REPO, "Benchmark"), make_entry("a", 100, bench=1))

        with pytest.raises(HistoryFormatError, match="Other"):
            document_with_history(document, history)

    def test_history_round_trip(self) -> None:
        """Test a history survives document conversion unchanged."""
        history = SuiteHistory.empty(REPO, "Benchmark")
        history, _ = merge(history, make_entry("a", 100, bench=1.5))
        history, _ = merge(history, make_entry("b", 200, bench=2))

        text = dumps_document(history_to_document(history))
        loaded = history_from_document(loads_document(text), REPO, "Benchmark")

        assert loaded == history


class TestDocumentText:
    """Tests for the document text forms."""

    def test_dumps_js_wrapper(self) -> None:
        """Test the default text form is a data.js script."""
        text = dumps_document({"lastUpdate": 0, "repoUrl": REPO, "entries": {}})

        assert text.startswith(JS_PREFIX)

    def test_dumps_plain_json(self) -> None:
        """Test the plain JSON form parses with json."""
        text = dumps_document({"lastUpdate": 0, "repoUrl": REPO, "entries": {}}, js_wrapper=False)

        assert json.loads(text)["repoUrl"] == REPO

    def test_loads_both_forms(self) -> None:
        """Test both text forms load to the same document."""
        document = {"lastUpdate": 5, "repoUrl": REPO, "entries": {}}

        assert loads_document(dumps_document(document)) == document
        assert loads_document(dumps_document(document, js_wrapper=False)) == document

    def test_loads_trailing_semicolon(self) -> None:
        """Test a trailing semicolon after the script body is accepted."""
        text = f'{JS_PREFIX}{{"lastUpdate": 0, "repoUrl": "{REPO}", "entries": {{}}}};\n'

        assert loads_document(text)["repoUrl"] == REPO

    def test_loads_invalid_json(self) -> None:
        """Test corrupt documents raise HistoryFormatError."""
        with pytest.raises(HistoryFormatError, match="Invalid history document"):
            loads_document(f"{JS_PREFIX}{{not json")

    def test_loads_non_object(self) -> None:
        """Test documents must be objects."""
        with pytest.raises(HistoryFormatError, match="must be an object"):
            loads_document("[1, 2, 3]")

    def test_loads_bad_entries(self) -> None:
        """Test entries must map suite names to lists."""
        with pytest.raises(HistoryFormatError):
            loads_document('{"entries": []}')


class TestHistoryRevision:
    """Tests for history revisions."""

    def test_same_entries_same_revision(self) -> None:
        """Test revision depends only on the entries."""
        entry = make_entry("a", 100, bench=1)
        first, _ = merge(SuiteHistory.empty(REPO, "Benchmark"), entry)
        second, _ = merge(SuiteHistory.empty(f"{REPO}/", "Benchmark"), entry)

        assert history_revision(first) == history_revision(second)

    def test_append_changes_revision(self) -> None:
        """Test appending changes the revision."""
        history, _ = merge(SuiteHistory.empty(REPO, "Benchmark"), make_entry("a", 100, bench=1))
        appended, _ = merge(history, make_entry("b", 200, bench=1))

        assert history_revision(history) != history_revision(appended)
