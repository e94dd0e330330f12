"""Normalizer registry and shared helpers.

A normalizer turns the raw output of one benchmark tool into
``(name, Measurement)`` pairs. ``normalize`` wraps the registered
normalizer with decoding, duplicate detection and the empty check.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError

from benchwatch.core.exceptions import (
    EmptyResultError,
    MalformedOutputError,
    UnitMismatchError,
    UnsupportedToolError,
)
from benchwatch.core.types import BenchmarkName, Measurement

if TYPE_CHECKING:
    from benchwatch.history.models import SuiteHistory

logger = logging.getLogger(__name__)

ParseFunc = Callable[[str], Iterable[tuple[BenchmarkName, Measurement]]]


@dataclass(frozen=True)
class NormalizerInfo:
    """Metadata about a registered normalizer.

    Attributes:
        tool: Tool name as declared by the caller (e.g., "cargo").
        parse: Function parsing decoded output into (name, Measurement) pairs.
        higher_is_better: Whether the tool reports throughput-style values.
        description: Human-readable description of the input format.
    """

    tool: str
    parse: ParseFunc
    higher_is_better: bool = False
    description: str = ""


_REGISTRY: dict[str, NormalizerInfo] = {}


def register_normalizer(
    tool: str,
    *,
    higher_is_better: bool = False,
    description: str = "",
) -> Callable[[ParseFunc], ParseFunc]:
    """Register a parse function for a tool name.

    Example:
        >>> @register_normalizer("mytool", description="one 'name value unit' per line")
        ... def parse_mytool(text: str) -> Iterable[tuple[str, Measurement]]:
        ...     ...
    """

    def decorator(func: ParseFunc) -> ParseFunc:
        if tool in _REGISTRY:
            logger.debug(f"Overriding normalizer for tool {tool!r}")
        _REGISTRY[tool] = NormalizerInfo(
            tool=tool,
            parse=func,
            higher_is_better=higher_is_better,
            description=description,
        )
        return func

    return decorator


def get_normalizer(tool: str) -> NormalizerInfo:
    """Get the normalizer registered for a tool.

    Raises:
        UnsupportedToolError: If no normalizer is registered.
    """
    info = _REGISTRY.get(tool)
    if info is None:
        raise UnsupportedToolError(tool, available_tools())
    return info


def available_tools() -> list[str]:
    """Names of all registered tools, sorted."""
    return sorted(_REGISTRY)


def higher_is_better(tool: str) -> bool:
    """Whether a tool reports values where higher is better. Unknown tools: False."""
    info = _REGISTRY.get(tool)
    return info.higher_is_better if info is not None else False


def make_measurement(
    tool: str,
    name: str,
    value: float,
    unit: str,
    dispersion: float = 0.0,
    extra: str | None = None,
) -> tuple[BenchmarkName, Measurement]:
    """Build a (name, Measurement) pair, reporting invalid numbers as malformed output."""
    try:
        return name, Measurement(value=value, dispersion=dispersion, unit=unit, extra=extra)
    except ValidationError as e:
        raise MalformedOutputError(f"{tool}: invalid measurement for {name!r}: {e}") from e


def normalize(raw: str | bytes, tool: str) -> dict[BenchmarkName, Measurement]:
    """Convert raw benchmark tool output into measurements.

    Pure function of its input.

    Args:
        raw: Tool output, as text or UTF-8 bytes.
        tool: Declared tool name (see ``available_tools``).

    Returns:
        Measurements by benchmark name, in output order.

    Raises:
        UnsupportedToolError: If the tool is unknown.
        MalformedOutputError: If the output cannot be parsed.
        EmptyResultError: If no benchmark was found.

    Example:
        >>> normalize("test bench_parse ... bench: 1,168 ns/iter (+/- 3)", "cargo")
        {'bench_parse': Measurement(value=1168.0, dispersion=3.0, unit='ns/iter', extra=None)}
    """
    info = get_normalizer(tool)

    if isinstance(raw, bytes):
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedOutputError(f"{tool}: output is not valid UTF-8: {e}") from e
    else:
        text = raw

    results: dict[BenchmarkName, Measurement] = {}
    for name, measurement in info.parse(text):
        if name in results:
            raise MalformedOutputError(f"{tool}: benchmark {name!r} reported more than once")
        results[name] = measurement

    if not results:
        raise EmptyResultError(f"{tool}: no benchmarks found in output")

    logger.debug(f"Normalized {len(results)} benchmarks from {tool} output")
    return results


def ensure_units_consistent(
    measurements: Mapping[BenchmarkName, Measurement],
    history: SuiteHistory,
) -> None:
    """Check new measurements against the units already recorded in a history.

    Benchmarks the history has never seen are accepted with any unit.

    Raises:
        UnitMismatchError: On the first benchmark reported in another unit.
    """
    units = history.units()
    for name, measurement in measurements.items():
        expected = units.get(name)
        if expected is not None and expected != measurement.unit:
            raise UnitMismatchError(name, expected, measurement.unit)
