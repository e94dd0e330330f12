"""Normalizers for hand-written JSON benchmark results.

Input is a JSON list of ``{"name", "value", "unit", "range"?, "extra"?}``
objects, the same shape as the persisted benches.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.history.codec import parse_range
from benchwatch.normalizers.base import make_measurement, register_normalizer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from benchwatch.core.types import Measurement


def _parse_custom(tool: str, text: str) -> Iterator[tuple[str, Measurement]]:
    try:
        benches = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"{tool}: invalid JSON: {e}") from e

    if not isinstance(benches, list):
        raise MalformedOutputError(f"{tool}: expected a JSON list of benchmarks")

    for bench in benches:
        if not isinstance(bench, dict):
            raise MalformedOutputError(f"{tool}: benchmark entries must be objects, got {bench!r}")
        try:
            name = bench["name"]
            value = bench["value"]
            unit = bench["unit"]
        except KeyError as e:
            raise MalformedOutputError(f"{tool}: benchmark is missing {e}: {bench!r}") from e

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedOutputError(f"{tool}: value of {name!r} is not a number: {value!r}")
        try:
            dispersion = parse_range(bench.get("range"), value=float(value))
        except ValueError as e:
            raise MalformedOutputError(f"{tool}: {e}") from e

        yield make_measurement(tool, str(name), float(value), str(unit), dispersion, bench.get("extra"))


@register_normalizer("customSmallerIsBetter", description="JSON list of {name, value, unit, range?}; lower is better")
def parse_custom_smaller(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse custom results where lower values are better."""
    return _parse_custom("customSmallerIsBetter", text)


@register_normalizer(
    "customBiggerIsBetter",
    higher_is_better=True,
    description="JSON list of {name, value, unit, range?}; higher is better",
)
def parse_custom_bigger(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse custom results where higher values are better."""
    return _parse_custom("customBiggerIsBetter", text)
