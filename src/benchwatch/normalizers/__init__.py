"""Measurement normalizers for benchwatch.

This module converts raw benchmark tool output into measurements keyed
by benchmark name. Builtin normalizers register themselves on import.

Example:
    >>> from benchwatch.normalizers import normalize
    >>> measurements = normalize(Path("bench.txt").read_text(), "cargo")
    >>> measurements["bench__bench_parse"].unit
    'ns/iter'
"""

from __future__ import annotations

from benchwatch.normalizers import benchmarkjs, cargo, custom, go, googlecpp, pytest_benchmark  # noqa: F401
from benchwatch.normalizers.base import (
    NormalizerInfo,
    available_tools,
    ensure_units_consistent,
    get_normalizer,
    higher_is_better,
    normalize,
    register_normalizer,
)

__all__ = [
    "NormalizerInfo",
    "available_tools",
    "ensure_units_consistent",
    "get_normalizer",
    "higher_is_better",
    "normalize",
    "register_normalizer",
]
