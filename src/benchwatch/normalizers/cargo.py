"""Normalizer for ``cargo bench`` (libtest) output."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.history.codec import parse_number
from benchwatch.normalizers.base import make_measurement, register_normalizer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from benchwatch.core.types import Measurement

# test bench::bench_parse ... bench:       1,168 ns/iter (+/- 3)
_LINE_RE = re.compile(
    r"^test\s+(?P<name>\S+)\s+\.\.\.\s+bench:\s+(?P<value>[\d,.]+)\s+(?P<unit>\S+)\s+\(\+/-\s*(?P<range>[\d,.]+)\)\s*$"
)


@register_normalizer("cargo", description="libtest bench lines: 'test name ... bench: N ns/iter (+/- D)'")
def parse_cargo(text: str) -> Iterator[tuple[str, Measurement]]:
    """Parse ``cargo bench`` output.

    Module paths in names are flattened: ``bench::bench_parse`` becomes
    ``bench__bench_parse``. Lines that are not benchmark results are ignored.
    """
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line.startswith("test ") or " bench:" not in line:
            continue

        match = _LINE_RE.match(line)
        if match is None:
            raise MalformedOutputError(f"cargo: unrecognized bench line {lineno}: {line!r}")

        try:
            value = parse_number(match.group("value"))
            dispersion = parse_number(match.group("range"))
        except ValueError as e:
            raise MalformedOutputError(f"cargo: invalid number on line {lineno}: {line!r}") from e

        yield make_measurement(
            "cargo",
            match.group("name").replace("::", "__"),
            value,
            match.group("unit"),
            dispersion,
        )
