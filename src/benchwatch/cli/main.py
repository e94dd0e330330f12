"""Main CLI entry point for benchwatch.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from benchwatch import __version__
from benchwatch.core.config import Settings
from benchwatch.core.exceptions import (
    ConfigurationError,
    IngestionError,
    NormalizationError,
    StorageError,
)
from benchwatch.core.types import CommitRef

if TYPE_CHECKING:
    from benchwatch.ingest import Ingestor
    from benchwatch.regression import DetectionResult, DetectorConfig

# Exit codes
EXIT_REGRESSION = 1
EXIT_BAD_INPUT = 2
EXIT_STORAGE = 3

app = typer.Typer(
    name="benchwatch",
    help="benchwatch: Track micro-benchmark history and catch performance regressions in CI.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, bool] = {
    "json": False,
    "no_color": False,
}


class Direction(str, Enum):
    """Which way is better for a suite."""

    AUTO = "auto"
    LOWER = "lower"
    HIGHER = "higher"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchwatch v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, level: str) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log debug messages to stderr.",
        ),
    ] = False,
) -> None:
    """benchwatch: benchmark history tracking and regression detection.

    Record each CI benchmark run per commit and flag slowdowns against the
    previous run.
    """
    state["json"] = json_output
    state["no_color"] = no_color
    _configure_logging(verbose, Settings().log_level)


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchwatch v{__version__}")


def _fail(message: str, code: int) -> typer.Exit:
    """Report an error and build the matching exit."""
    if state["json"]:
        typer.echo(json.dumps({"status": "error", "error": message, "version": __version__}))
    else:
        typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code)


def _emit(command: str, status: str, data: dict[str, Any]) -> None:
    """Print the standard JSON envelope."""
    typer.echo(
        json.dumps(
            {"command": command, "status": status, "version": __version__, "data": data},
            indent=2,
            default=str,
        )
    )


def _load_commit(path: Path) -> CommitRef:
    """Read a CommitRef from JSON (a bare commit or a push payload with head_commit)."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise _fail(f"Cannot read commit file {path}: {e}", EXIT_BAD_INPUT) from e
    except json.JSONDecodeError as e:
        raise _fail(f"Commit file {path} is not valid JSON: {e}", EXIT_BAD_INPUT) from e

    if isinstance(payload, dict) and isinstance(payload.get("head_commit"), dict):
        payload = payload["head_commit"]
    try:
        return CommitRef.model_validate(payload)
    except ValidationError as e:
        raise _fail(f"Invalid commit in {path}: {e}", EXIT_BAD_INPUT) from e


def _read_output(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise _fail(f"Cannot read benchmark output {path}: {e}", EXIT_BAD_INPUT) from e


def _detector_config(threshold: float | None, direction: Direction, config_path: str | None) -> DetectorConfig:
    from benchwatch.regression import DetectorConfig

    try:
        base = DetectorConfig.from_yaml(config_path) if config_path else None
        if threshold is None:
            threshold = base.regression_threshold if base else Settings().regression_threshold
        higher = base.higher_is_better if base else None
        if direction is not Direction.AUTO:
            higher = direction is Direction.HIGHER
        return DetectorConfig(regression_threshold=threshold, higher_is_better=higher)
    except (ConfigurationError, FileNotFoundError) as e:
        raise _fail(str(e), EXIT_BAD_INPUT) from e


def _check_repo(repo: str) -> None:
    """Reject repository URLs that cannot name a history location."""
    from benchwatch.history.storage import repository_slug

    try:
        repository_slug(repo)
    except ValueError as e:
        raise _fail(str(e), EXIT_BAD_INPUT) from e


def _build_ingestor(
    store_dir: str | None,
    config: DetectorConfig,
    max_entries: int | None = None,
) -> Ingestor:
    from benchwatch.history.storage import JSONFileStore
    from benchwatch.ingest import Ingestor

    settings = Settings()
    store = JSONFileStore(
        store_dir or settings.store_dir,
        max_entries=max_entries if max_entries is not None else settings.max_entries,
        lock_timeout=settings.lock_timeout_seconds,
    )
    return Ingestor(store, config, max_retries=settings.max_retries, retry_delay=settings.retry_delay)


def _print_result(result: DetectionResult) -> None:
    from benchwatch.reporters import ConsoleReporter

    ConsoleReporter(use_colors=not state["no_color"]).report(result)


@app.command()
def ingest(
    tool: Annotated[
        str,
        typer.Option("--tool", "-t", help="Benchmark tool that produced the output (see 'benchwatch tools')."),
    ],
    output: Annotated[
        str,
        typer.Option("--output", "-o", help="File with the raw benchmark output ('-' for stdin)."),
    ],
    commit: Annotated[
        Path,
        typer.Option("--commit", "-c", help="JSON file describing the commit (GitHub head_commit shape)."),
    ],
    repo: Annotated[
        str,
        typer.Option("--repo", "-r", help="Repository URL."),
    ],
    suite: Annotated[
        str | None,
        typer.Option("--suite", "-s", help="Benchmark suite name."),
    ] = None,
    store: Annotated[
        str | None,
        typer.Option("--store", help="History directory."),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", min=0.0, help="Regression threshold ratio (0.1 = 10%)."),
    ] = None,
    direction: Annotated[
        Direction,
        typer.Option("--direction", help="Which values are better: auto (from the tool), lower or higher."),
    ] = Direction.AUTO,
    config: Annotated[
        str | None,
        typer.Option("--config", help="YAML file with detector settings."),
    ] = None,
    max_entries: Annotated[
        int | None,
        typer.Option("--max-entries", min=1, help="Keep only the newest N entries of the suite."),
    ] = None,
    fail_on_regression: Annotated[
        bool,
        typer.Option("--fail-on-regression", help="Exit with status 1 if any benchmark regressed."),
    ] = False,
) -> None:
    """Record a benchmark run and check it for regressions.

    Examples:
        benchwatch ingest -t cargo -o bench.txt -c commit.json -r https://github.com/acme/parser
        cargo bench | benchwatch ingest -t cargo -o - -c commit.json -r URL --fail-on-regression
        benchwatch --json ingest -t pytest -o benchmark.json -c commit.json -r URL --threshold 0.2
    """
    from benchwatch.reporters import JSONReporter

    _check_repo(repo)
    suite = suite or Settings().suite
    commit_ref = _load_commit(commit)
    raw = _read_output(output)
    ingestor = _build_ingestor(store, _detector_config(threshold, direction, config), max_entries)

    try:
        result = asyncio.run(ingestor.ingest(repo, suite, tool, raw, commit_ref))
    except (NormalizationError, ConfigurationError) as e:
        raise _fail(str(e), EXIT_BAD_INPUT) from e
    except (IngestionError, StorageError) as e:
        raise _fail(str(e), EXIT_STORAGE) from e

    if state["json"]:
        data = JSONReporter().to_dict(result.detection)
        data["entries"] = len(result.history)
        _emit("ingest", result.outcome.value, data)
    else:
        typer.echo(f"  {result.outcome.value.capitalize()}: {commit_ref.id} -> {repo} [{suite}]")
        _print_result(result.detection)

    if fail_on_regression and result.has_regressions:
        raise typer.Exit(EXIT_REGRESSION)


@app.command()
def check(
    repo: Annotated[
        str,
        typer.Option("--repo", "-r", help="Repository URL."),
    ],
    suite: Annotated[
        str | None,
        typer.Option("--suite", "-s", help="Benchmark suite name."),
    ] = None,
    commit_id: Annotated[
        str | None,
        typer.Option("--commit", help="Commit id to check (default: latest entry)."),
    ] = None,
    store: Annotated[
        str | None,
        typer.Option("--store", help="History directory."),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", min=0.0, help="Regression threshold ratio (0.1 = 10%)."),
    ] = None,
    direction: Annotated[
        Direction,
        typer.Option("--direction", help="Which values are better: auto (from the tool), lower or higher."),
    ] = Direction.AUTO,
    config: Annotated[
        str | None,
        typer.Option("--config", help="YAML file with detector settings."),
    ] = None,
    fail_on_regression: Annotated[
        bool,
        typer.Option("--fail-on-regression", help="Exit with status 1 if any benchmark regressed."),
    ] = False,
) -> None:
    """Re-run regression detection for a stored entry.

    Examples:
        benchwatch check -r https://github.com/acme/parser
        benchwatch check -r URL --commit 9cf8e98 --threshold 0.05
    """
    from benchwatch.reporters import JSONReporter

    _check_repo(repo)
    suite = suite or Settings().suite
    ingestor = _build_ingestor(store, _detector_config(threshold, direction, config))

    try:
        result = asyncio.run(ingestor.check(repo, suite, commit_id))
    except StorageError as e:
        raise _fail(str(e), EXIT_STORAGE) from e

    if result is None:
        target = f"commit {commit_id}" if commit_id else "any entry"
        raise _fail(f"No history for {target} in {repo} [{suite}]", EXIT_BAD_INPUT)

    if state["json"]:
        status = "regressed" if result.has_regressions else "ok"
        _emit("check", status, JSONReporter().to_dict(result))
    else:
        _print_result(result)

    if fail_on_regression and result.has_regressions:
        raise typer.Exit(EXIT_REGRESSION)


@app.command()
def history(
    repo: Annotated[
        str,
        typer.Option("--repo", "-r", help="Repository URL."),
    ],
    suite: Annotated[
        str | None,
        typer.Option("--suite", "-s", help="Benchmark suite name."),
    ] = None,
    store: Annotated[
        str | None,
        typer.Option("--store", help="History directory."),
    ] = None,
    by_commit_time: Annotated[
        bool,
        typer.Option("--by-commit-time", help="Sort by commit timestamp instead of arrival order."),
    ] = False,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Show only the last N entries."),
    ] = None,
) -> None:
    """List the recorded entries of a suite.

    Examples:
        benchwatch history -r https://github.com/acme/parser
        benchwatch --json history -r URL --by-commit-time -n 10
    """
    from benchwatch.history.codec import entry_to_dict
    from benchwatch.history.storage import JSONFileStore

    _check_repo(repo)
    settings = Settings()
    suite = suite or settings.suite
    json_store = JSONFileStore(store or settings.store_dir, lock_timeout=settings.lock_timeout_seconds)

    try:
        suite_history = asyncio.run(json_store.load(repo, suite))
    except StorageError as e:
        raise _fail(str(e), EXIT_STORAGE) from e

    entries = suite_history.sorted_by_commit_time() if by_commit_time else list(suite_history.entries)
    if limit is not None:
        entries = entries[-limit:]

    if state["json"]:
        _emit(
            "history",
            "ok",
            {
                "repoUrl": repo,
                "suite": suite,
                "lastUpdate": suite_history.last_update,
                "entries": [entry_to_dict(entry) for entry in entries],
            },
        )
        return

    if not entries:
        typer.echo(f"  No entries recorded for {repo} [{suite}]")
        return

    typer.echo(f"  {repo} [{suite}]: {len(suite_history)} entries")
    for entry in entries:
        recorded = entry.recorded_datetime.strftime("%Y-%m-%d %H:%M:%S")
        message = entry.commit.message.splitlines()[0] if entry.commit.message else ""
        typer.echo(
            f"    {entry.commit.id[:12]}  {entry.commit.timestamp.isoformat()}  recorded {recorded}  "
            f"{entry.tool:<10} {len(entry.benches):>3} benches  {message}"
        )


@app.command()
def tools() -> None:
    """List supported benchmark tools."""
    from benchwatch.normalizers import available_tools, get_normalizer

    infos = [get_normalizer(name) for name in available_tools()]
    if state["json"]:
        _emit(
            "tools",
            "ok",
            {
                "tools": [
                    {"name": info.tool, "higher_is_better": info.higher_is_better, "description": info.description}
                    for info in infos
                ]
            },
        )
        return

    for info in infos:
        better = "higher" if info.higher_is_better else "lower"
        typer.echo(f"  {info.tool:<22} {better:<6} is better  {info.description}")

