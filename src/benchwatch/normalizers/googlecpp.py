"""Normalizer for Google Benchmark JSON output (``--benchmark_format=json``)."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.normalizers.base import make_measurement, register_normalizer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from benchwatch.core.types import Measurement


def _real_time(bench: dict[str, Any]) -> float:
    try:
        return float(bench["real_time"])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedOutputError(f"googlecpp: benchmark {bench.get('name')!r} has no real_time") from e


@register_normalizer("googlecpp", description="Google Benchmark JSON; value is real_time per iteration")
def parse_googlecpp(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse Google Benchmark JSON output.

    With ``--benchmark_repetitions`` the ``mean`` and ``stddev`` aggregates
    give value and dispersion and the individual repetitions are skipped.
    Without repetitions each iteration run is one measurement with no
    dispersion.
    """
    try:
        report = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"googlecpp: invalid JSON: {e}") from e

    if not isinstance(report, dict) or not isinstance(report.get("benchmarks"), list):
        raise MalformedOutputError("googlecpp: report has no 'benchmarks' list")

    benches: list[dict[str, Any]] = report["benchmarks"]
    if not all(isinstance(bench, dict) for bench in benches):
        raise MalformedOutputError("googlecpp: benchmark entries must be objects")

    aggregates: dict[str, dict[str, dict[str, Any]]] = {}
    for bench in benches:
        if bench.get("run_type") == "aggregate":
            run_name = bench.get("run_name", bench.get("name"))
            aggregates.setdefault(run_name, {})[bench.get("aggregate_name", "")] = bench

    emitted: set[str] = set()
    for bench in benches:
        run_name = bench.get("run_name", bench.get("name"))
        if not isinstance(run_name, str):
            raise MalformedOutputError("googlecpp: benchmark entry without a name")

        unit = f"{bench.get('time_unit', 'ns')}/iter"
        stats = aggregates.get(run_name, {})

        if "mean" in stats:
            if run_name in emitted:
                continue
            emitted.add(run_name)
            mean = stats["mean"]
            dispersion = _real_time(stats["stddev"]) if "stddev" in stats else 0.0
            extra = f"repetitions: {mean.get('repetitions', '?')}"
            yield make_measurement("googlecpp", run_name, _real_time(mean), unit, dispersion, extra)
        elif bench.get("run_type", "iteration") == "iteration":
            extra = f"iterations: {bench.get('iterations', '?')}\ncpu: {bench.get('cpu_time', '?')} {unit}"
            yield make_measurement("googlecpp", bench.get("name", run_name), _real_time(bench), unit, 0.0, extra)
