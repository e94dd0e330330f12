"""Normalizer for ``go test -bench`` output."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.history.codec import parse_number
from benchwatch.normalizers.base import make_measurement, register_normalizer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from benchwatch.core.types import Measurement

# BenchmarkFib10-8   	 5000000	       325 ns/op	       0 B/op
_LINE_RE = re.compile(r"^(?P<name>Benchmark\S*?)(?:-(?P<procs>\d+))?\s+(?P<times>\d+)\s+(?P<metrics>.+)$")


@register_normalizer("go", description="go test -bench lines: 'BenchmarkX-8 N 325 ns/op ...'")
def parse_go(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse ``go test -bench`` output.

    The first metric of a line is the measurement. Iterations, GOMAXPROCS
    and the remaining metrics (B/op, allocs/op, custom ones) go to
    ``extra``. Go reports no spread, so dispersion is 0.
    """
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line.startswith("Benchmark"):
            continue

        match = _LINE_RE.match(line)
        if match is None:
            # Lines such as "BenchmarkFoo" alone precede sub-benchmark output.
            if len(line.split()) == 1:
                continue
            raise MalformedOutputError(f"go: unrecognized benchmark line {lineno}: {line!r}")

        fields = match.group("metrics").split()
        if len(fields) % 2 != 0:
            raise MalformedOutputError(f"go: unpaired metric on line {lineno}: {line!r}")

        try:
            metrics = [(parse_number(fields[i]), fields[i + 1]) for i in range(0, len(fields), 2)]
        except ValueError as e:
            raise MalformedOutputError(f"go: invalid number on line {lineno}: {line!r}") from e

        (value, unit), others = metrics[0], metrics[1:]
        extra = [f"{match.group('times')} times"]
        if match.group("procs"):
            extra.append(f"{match.group('procs')} procs")
        extra.extend(f"{other_value:g} {other_unit}" for other_value, other_unit in others)

        yield make_measurement("go", match.group("name"), value, unit, 0.0, "\n".join(extra))
