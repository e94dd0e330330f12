"""Models for regression detection.

This module provides the detector configuration, the per-benchmark
verdicts and the detection result handed to reporters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from benchwatch.core.exceptions import ConfigurationError


class Verdict(str, Enum):
    """Classification of one benchmark against its baseline."""

    IMPROVED = "improved"
    STABLE = "stable"
    REGRESSED = "regressed"
    INSUFFICIENT_HISTORY = "insufficient_history"


@dataclass(frozen=True)
class DetectorConfig:
    """Configuration for regression detection.

    The threshold has no default here: callers pick one (the CLI takes it
    from ``Settings.regression_threshold``).

    Attributes:
        regression_threshold: Fractional change tolerated on top of the
            measured dispersion (0.10 = 10%).
        higher_is_better: Direction of the suite. None derives it from the
            tool of the entry being checked (throughput tools such as
            ``pytest`` or ``customBiggerIsBetter`` are higher-is-better).

    Example:
        >>> config = DetectorConfig(regression_threshold=0.10)
        >>> config.resolve_higher_is_better("cargo")
        False
    """

    regression_threshold: float
    higher_is_better: bool | None = None

    def __post_init__(self) -> None:
        """Validate the threshold."""
        if not math.isfinite(self.regression_threshold) or self.regression_threshold < 0:
            raise ConfigurationError(
                f"regression_threshold must be a finite ratio >= 0, got {self.regression_threshold}"
            )

    def resolve_higher_is_better(self, tool: str) -> bool:
        """Direction for entries produced by a tool."""
        if self.higher_is_better is not None:
            return self.higher_is_better

        from benchwatch.normalizers import higher_is_better

        return higher_is_better(tool)

    @classmethod
    def from_yaml(cls, path: Path | str) -> DetectorConfig:
        """Load detector configuration from a YAML file.

        The file holds the keys at top level or under ``detector``::

            detector:
              regression_threshold: 0.15
              higher_is_better: false

        Args:
            path: Path to the YAML configuration file.

        Returns:
            DetectorConfig loaded from the file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the YAML is invalid or lacks the threshold.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise FileNotFoundError(msg)

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping in {path}")

        section = data.get("detector", data)
        if "regression_threshold" not in section:
            raise ConfigurationError(f"Missing regression_threshold in {path}")

        try:
            threshold = float(section["regression_threshold"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"regression_threshold in {path} is not a number") from e

        higher = section.get("higher_is_better")
        if higher is not None and not isinstance(higher, bool):
            raise ConfigurationError(f"higher_is_better in {path} must be true, false or omitted")

        return cls(regression_threshold=threshold, higher_is_better=higher)


@dataclass(frozen=True)
class BenchmarkVerdict:
    """Verdict for one benchmark, with the numbers behind it.

    Baseline fields are None when the verdict is INSUFFICIENT_HISTORY.

    Attributes:
        name: Benchmark name.
        verdict: Classification.
        value: Value in the checked entry.
        dispersion: Dispersion in the checked entry.
        unit: Unit of value and dispersion.
        baseline_value: Value in the baseline entry.
        baseline_dispersion: Dispersion in the baseline entry.
        baseline_commit_id: Commit of the baseline entry.
        delta: ``value - baseline_value``.
        tolerance: ``threshold * baseline_value + both dispersions``.
        ratio: ``value / baseline_value`` (None for a zero baseline).
    """

    name: str
    verdict: Verdict
    value: float
    dispersion: float
    unit: str
    baseline_value: float | None = None
    baseline_dispersion: float | None = None
    baseline_commit_id: str | None = None
    delta: float | None = None
    tolerance: float | None = None
    ratio: float | None = None

    @property
    def change_percent(self) -> float | None:
        """Relative change from the baseline in percent."""
        if self.ratio is None:
            return None
        return (self.ratio - 1) * 100

    @property
    def message(self) -> str:
        """Human-readable verdict message.

        Example:
            >>> verdict.message
            'bench_parse regressed: 1168 -> 1320 ns/iter (+13.0%, tolerance 122.8)'
        """
        if self.verdict is Verdict.INSUFFICIENT_HISTORY or self.baseline_value is None:
            return f"{self.name}: no baseline yet ({self.value:g} {self.unit})"

        change = self.change_percent
        change_text = f"{change:+.1f}%, " if change is not None else ""
        return (
            f"{self.name} {self.verdict.value}: {self.baseline_value:g} -> {self.value:g} {self.unit} "
            f"({change_text}tolerance {self.tolerance:g})"
        )


@dataclass
class DetectionResult:
    """Result of regression detection for one entry.

    Attributes:
        commit_id: Commit of the checked entry.
        suite: Suite name.
        threshold: Regression threshold that was applied.
        higher_is_better: Direction that was applied.
        verdicts: Per-benchmark verdicts, in entry order.

    Example:
        >>> result = analyze(history, entry, DetectorConfig(regression_threshold=0.1))
        >>> if result.has_regressions:
        ...     for verdict in result.regressions:
        ...         print(verdict.message)
    """

    commit_id: str
    suite: str
    threshold: float
    higher_is_better: bool
    verdicts: dict[str, BenchmarkVerdict] = field(default_factory=dict)

    def verdict_map(self) -> dict[str, Verdict]:
        """Benchmark name to Verdict."""
        return {name: item.verdict for name, item in self.verdicts.items()}

    def with_verdict(self, verdict: Verdict) -> list[BenchmarkVerdict]:
        """All benchmark verdicts of one kind."""
        return [item for item in self.verdicts.values() if item.verdict is verdict]

    @property
    def regressions(self) -> list[BenchmarkVerdict]:
        """Benchmarks that regressed."""
        return self.with_verdict(Verdict.REGRESSED)

    @property
    def improvements(self) -> list[BenchmarkVerdict]:
        """Benchmarks that improved."""
        return self.with_verdict(Verdict.IMPROVED)

    @property
    def has_regressions(self) -> bool:
        """Check if any benchmark regressed."""
        return any(item.verdict is Verdict.REGRESSED for item in self.verdicts.values())

    def counts(self) -> dict[Verdict, int]:
        """Number of benchmarks per verdict."""
        counts = dict.fromkeys(Verdict, 0)
        for item in self.verdicts.values():
            counts[item.verdict] += 1
        return counts

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        counts = self.counts()
        lines = [
            f"Regression check for {self.commit_id[:12]} [{self.suite}] (threshold: {self.threshold * 100:.1f}%)",
            (
                f"  Regressed: {counts[Verdict.REGRESSED]}, Improved: {counts[Verdict.IMPROVED]}, "
                f"Stable: {counts[Verdict.STABLE]}, No baseline: {counts[Verdict.INSUFFICIENT_HISTORY]}"
            ),
        ]

        flagged = self.regressions + self.improvements
        if flagged:
            lines.append("")
            for item in flagged:
                marker = "[REGRESSED]" if item.verdict is Verdict.REGRESSED else "[IMPROVED]"
                lines.append(f"  {marker} {item.message}")

        return "\n".join(lines)
