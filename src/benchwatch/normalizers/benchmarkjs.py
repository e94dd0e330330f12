"""Normalizer for Benchmark.js output."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.history.codec import parse_number
from benchwatch.normalizers.base import make_measurement, register_normalizer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from benchwatch.core.types import Measurement

# fib(20) x 11,465 ops/sec ±1.12% (91 runs sampled)
_LINE_RE = re.compile(
    r"^(?P<name>.+?) x (?P<value>[\d,.]+) (?P<unit>\S+) ±(?P<percent>[\d.]+)% \((?P<runs>\d+) runs? sampled\)$"
)


@register_normalizer(
    "benchmarkjs",
    higher_is_better=True,
    description="Benchmark.js lines: 'name x N ops/sec ±P% (R runs sampled)'",
)
def parse_benchmarkjs(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse Benchmark.js output.

    The relative margin of error is converted to an absolute dispersion in
    the value's unit. Summary lines ("Fastest is ...") are ignored.
    """
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        match = _LINE_RE.match(line)
        if match is None:
            continue

        try:
            value = parse_number(match.group("value"))
            percent = float(match.group("percent"))
        except ValueError as e:
            raise MalformedOutputError(f"benchmarkjs: invalid number on line {lineno}: {line!r}") from e

        yield make_measurement(
            "benchmarkjs",
            match.group("name"),
            value,
            match.group("unit"),
            value * percent / 100,
            f"{match.group('runs')} samples",
        )
