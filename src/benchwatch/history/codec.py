"""Persisted representation of benchmark histories.

Histories are stored in the document format written by
github-action-benchmark::

    window.BENCHMARK_DATA = {
      "lastUpdate": 1599497467150,
      "repoUrl": "https://github.com/acme/parser",
      "entries": {
        "Benchmark": [
          {
            "commit": {"author": {...}, "committer": {...}, "id": "...",
                       "message": "...", "timestamp": "..."},
            "date": 1599497466782,
            "tool": "cargo",
            "benches": [{"name": "bench_parse", "value": 1168,
                         "range": "± 3", "unit": "ns/iter"}]
          }
        ]
      }
    }

The ``range`` display string is only produced and parsed here; in memory
the dispersion is always numeric.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

from pydantic import ValidationError

from benchwatch.core.exceptions import HistoryFormatError
from benchwatch.core.types import CommitRef, Entry, Measurement
from benchwatch.history.models import SuiteHistory

JS_PREFIX = "window.BENCHMARK_DATA = "

_JS_WRAPPER_RE = re.compile(r"^\s*window\.BENCHMARK_DATA\s*=\s*(?P<body>.*?);?\s*$", re.DOTALL)

_NUMBER = r"(?P<number>(?:\d[\d,]*(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)"
_RANGE_RE = re.compile(
    rf"^(?:±|\+/-|\+-|stddev:?)?\s*{_NUMBER}\s*(?P<percent>%)?$",
    re.IGNORECASE,
)


def parse_number(text: str) -> float:
    """Parse a number as printed by benchmark tools, with thousands separators.

    Raises:
        ValueError: If the text is not a number.
    """
    return float(text.strip().replace(",", ""))


def format_number(value: float) -> int | float:
    """Return integral values as int so they serialize without a fraction."""
    if float(value).is_integer():
        return int(value)
    return value


def format_range(dispersion: float) -> str:
    """Render a dispersion as the ``"± N"`` display string.

    Example:
        >>> format_range(3.0)
        '± 3'
    """
    return f"± {format_number(dispersion)}"


def parse_range(text: str | None, value: float | None = None) -> float:
    """Parse a ``range`` display string back to a numeric dispersion.

    Accepts ``"± 3"``, ``"+/- 3"``, ``"stddev: 0.01"``, ``"1,024"`` and
    relative forms such as ``"±1.12%"`` (which need ``value``). An empty
    or missing range means no dispersion.

    Args:
        text: The display string.
        value: Measured value, required for relative ranges.

    Returns:
        Absolute dispersion.

    Raises:
        ValueError: If the string cannot be interpreted.

    Example:
        >>> parse_range("± 49")
        49.0
        >>> parse_range("±2%", value=200)
        4.0
    """
    if text is None or not text.strip():
        return 0.0

    match = _RANGE_RE.match(text.strip())
    if match is None:
        raise ValueError(f"Unrecognized range: {text!r}")

    number = parse_number(match.group("number"))
    if match.group("percent"):
        if value is None:
            raise ValueError(f"Relative range {text!r} needs a value")
        return abs(value) * number / 100
    return number


def canonical_repository(url: str) -> str:
    """Normalize a repository URL for comparison (no trailing slash or .git)."""
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


# ============================================================================
# Entries
# ============================================================================


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    """Convert an Entry to its persisted form.

    Args:
        entry: Entry to serialize.

    Returns:
        JSON-serializable dictionary.
    """
    commit = entry.commit.model_dump(mode="json", exclude_none=True)

    benches: list[dict[str, Any]] = []
    for name, measurement in entry.benches.items():
        bench: dict[str, Any] = {
            "name": name,
            "value": format_number(measurement.value),
            "range": format_range(measurement.dispersion),
            "unit": measurement.unit,
        }
        if measurement.extra is not None:
            bench["extra"] = measurement.extra
        benches.append(bench)

    return {
        "commit": commit,
        "date": entry.recorded_at,
        "tool": entry.tool,
        "benches": benches,
    }


def entry_from_dict(data: Any) -> Entry:
    """Create an Entry from its persisted form.

    Args:
        data: Dictionary as produced by ``entry_to_dict``.

    Returns:
        Entry instance.

    Raises:
        HistoryFormatError: If the dictionary is malformed.
    """
    if not isinstance(data, dict):
        raise HistoryFormatError(f"Entry must be an object, got {type(data).__name__}")

    try:
        commit = CommitRef.model_validate(data["commit"])
        raw_benches = data["benches"]
        date = data["date"]
        tool = data["tool"]
    except KeyError as e:
        raise HistoryFormatError(f"Entry is missing field {e}") from e
    except ValidationError as e:
        raise HistoryFormatError(f"Invalid commit in entry: {e}") from e

    if not isinstance(raw_benches, list):
        raise HistoryFormatError("Entry 'benches' must be a list")

    benches: dict[str, Measurement] = {}
    for bench in raw_benches:
        try:
            name = bench["name"]
            value = bench["value"]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise HistoryFormatError(f"Benchmark {name!r} has a non-numeric value: {value!r}")
            dispersion = parse_range(bench.get("range"), value=float(value))
            measurement = Measurement(
                value=value,
                dispersion=dispersion,
                unit=bench["unit"],
                extra=bench.get("extra"),
            )
        except (KeyError, TypeError) as e:
            raise HistoryFormatError(f"Malformed benchmark in commit {commit.id}: {bench!r}") from e
        except (ValueError, ValidationError) as e:
            raise HistoryFormatError(f"Invalid benchmark in commit {commit.id}: {e}") from e

        if name in benches:
            raise HistoryFormatError(f"Duplicate benchmark {name!r} in commit {commit.id}")
        benches[name] = measurement

    try:
        return Entry(commit=commit, recorded_at=date, tool=tool, benches=benches)
    except ValidationError as e:
        raise HistoryFormatError(f"Invalid entry for commit {commit.id}: {e}") from e


# ============================================================================
# Documents
# ============================================================================


def empty_document(repository: str) -> dict[str, Any]:
    """A document without any suites."""
    return {"lastUpdate": 0, "repoUrl": repository, "entries": {}}


def history_from_document(document: dict[str, Any], repository: str, suite: str) -> SuiteHistory:
    """Extract one suite from a document.

    ``last_update`` of the result is the ``date`` of the suite's last entry,
    so a history survives a save/load round-trip unchanged.

    Args:
        document: Parsed document.
        repository: Repository URL the caller expects.
        suite: Suite name.

    Returns:
        The suite's history, empty if the suite is absent.

    Raises:
        HistoryFormatError: If the document is malformed or belongs to a
            different repository.
    """
    _check_document(document, repository)
    raw_entries = document["entries"].get(suite, [])
    if not isinstance(raw_entries, list):
        raise HistoryFormatError(f"Suite {suite!r} must be a list of entries")

    entries = tuple(entry_from_dict(raw) for raw in raw_entries)
    seen: set[str] = set()
    for entry in entries:
        if entry.commit.id in seen:
            raise HistoryFormatError(f"Commit {entry.commit.id} recorded twice in suite {suite!r}")
        seen.add(entry.commit.id)

    return SuiteHistory(
        repository=repository,
        suite=suite,
        entries=entries,
        last_update=entries[-1].recorded_at if entries else None,
    )


def _last_date(suite: str, raw: Any) -> int:
    """``date`` of the newest entry of a raw suite.

    Raises:
        HistoryFormatError: If the suite has no integer date to read.
    """
    try:
        date = raw[-1]["date"]
    except (KeyError, TypeError, IndexError) as e:
        raise HistoryFormatError(f"Suite {suite!r} has no readable entry date") from e
    if isinstance(date, bool) or not isinstance(date, int):
        raise HistoryFormatError(f"Suite {suite!r} has a non-integer date: {date!r}")
    return date


def document_with_history(document: dict[str, Any] | None, history: SuiteHistory) -> dict[str, Any]:
    """Return a copy of a document with one suite replaced.

    Other suites are kept as they are. ``lastUpdate`` becomes the newest
    ``date`` across all suites.

    Args:
        document: Existing document, or None to start a new one.
        history: Suite to write.

    Returns:
        New document dictionary.
    """
    base = document if document is not None else empty_document(history.repository)
    _check_document(base, history.repository)

    suites = dict(base["entries"])
    suites[history.suite] = [entry_to_dict(entry) for entry in history.entries]

    last_dates = [_last_date(name, raw) for name, raw in suites.items() if raw]
    last_update = max(last_dates, default=base.get("lastUpdate") or 0)

    return {
        "lastUpdate": last_update,
        "repoUrl": history.repository,
        "entries": suites,
    }


def history_to_document(history: SuiteHistory) -> dict[str, Any]:
    """Build a standalone document holding a single suite."""
    return document_with_history(None, history)


def history_revision(history: SuiteHistory) -> str:
    """Fingerprint of a suite's persisted entries.

    Two histories with the same entries have the same revision, whatever
    store they come from. Used as the optimistic-concurrency token.
    """
    payload = json.dumps(
        [entry_to_dict(entry) for entry in history.entries],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def loads_document(text: str) -> dict[str, Any]:
    """Parse a document from plain JSON or the ``window.BENCHMARK_DATA`` script form.

    Raises:
        HistoryFormatError: If the text is not a valid document.
    """
    match = _JS_WRAPPER_RE.match(text)
    body = match.group("body") if match else text
    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        raise HistoryFormatError(f"Invalid history document: {e}") from e

    if not isinstance(document, dict):
        raise HistoryFormatError("History document must be an object")
    document.setdefault("entries", {})
    if not isinstance(document["entries"], dict):
        raise HistoryFormatError("History document 'entries' must be an object")
    return document


def dumps_document(document: dict[str, Any], js_wrapper: bool = True) -> str:
    """Serialize a document, optionally as a ``data.js`` script."""
    content = json.dumps(document, indent=2, ensure_ascii=False)
    if js_wrapper:
        return f"{JS_PREFIX}{content}\n"
    return f"{content}\n"


def _check_document(document: dict[str, Any], repository: str) -> None:
    entries = document.get("entries")
    if not isinstance(entries, dict):
        raise HistoryFormatError("History document 'entries' must be an object")

    stored = document.get("repoUrl")
    if stored and canonical_repository(stored) != canonical_repository(repository):
        raise HistoryFormatError(f"History document belongs to {stored}, not {repository}")
