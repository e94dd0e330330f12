"""Normalizer for pytest-benchmark JSON reports (``--benchmark-json``)."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.normalizers.base import make_measurement, register_normalizer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from benchwatch.core.types import Measurement


@register_normalizer(
    "pytest",
    higher_is_better=True,
    description="pytest-benchmark JSON report; value is stats.ops in iter/sec",
)
def parse_pytest(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse a pytest-benchmark JSON report.

    The value is the throughput ``stats.ops`` (iter/sec). The standard
    deviation of the round time is propagated to the throughput as
    ``ops * stddev / mean`` so value and dispersion share a unit.
    """
    try:
        report = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"pytest: invalid JSON: {e}") from e

    if not isinstance(report, dict) or not isinstance(report.get("benchmarks"), list):
        raise MalformedOutputError("pytest: report has no 'benchmarks' list")

    for bench in report["benchmarks"]:
        try:
            name = bench["fullname"]
            stats = bench["stats"]
            ops = float(stats["ops"])
            mean = float(stats["mean"])
            stddev = float(stats["stddev"])
            rounds = stats.get("rounds")
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedOutputError(f"pytest: malformed benchmark entry: {e!r}") from e

        dispersion = ops * stddev / mean if mean > 0 else 0.0
        extra = f"mean: {mean:g} sec\nrounds: {rounds}"
        yield make_measurement("pytest", name, ops, "iter/sec", dispersion, extra)
