"""Regression detector for benchmark histories.

This module compares the measurements of one Entry with the most recent
earlier observation of each benchmark and classifies the change. All
functions are pure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from benchwatch.regression.models import BenchmarkVerdict, DetectionResult, DetectorConfig, Verdict

if TYPE_CHECKING:
    from benchwatch.core.types import Entry, Measurement
    from benchwatch.history.models import SuiteHistory

logger = logging.getLogger(__name__)


def _prior_entries(history: SuiteHistory, latest: Entry) -> tuple[Entry, ...]:
    """Entries appended before ``latest``, or the whole history if it is absent."""
    for index, entry in enumerate(history.entries):
        if entry.commit.id == latest.commit.id:
            return history.entries[:index]
    return history.entries


def _find_baseline(prior: tuple[Entry, ...], name: str) -> Entry | None:
    """Most recent entry (by arrival) reporting a benchmark."""
    for entry in reversed(prior):
        if name in entry.benches:
            return entry
    return None


def classify(
    current: Measurement,
    baseline: Measurement,
    threshold: float,
    higher_is_better: bool = False,
) -> tuple[Verdict, float, float]:
    """Classify one measurement against its baseline.

    The tolerance grows with both dispersions, so noisy benchmarks need a
    larger change before they are flagged. A change exactly equal to the
    tolerance is Stable.

    Args:
        current: Measurement being checked.
        baseline: Baseline measurement.
        threshold: Fractional threshold (0.10 = 10%).
        higher_is_better: Treat a decrease as the regression direction.

    Returns:
        Tuple of (verdict, delta, tolerance).

    Example:
        >>> classify(Measurement(value=1101, unit="ns"), Measurement(value=1000, unit="ns"), 0.10)
        (<Verdict.REGRESSED: 'regressed'>, 101.0, 100.0)
    """
    delta = current.value - baseline.value
    tolerance = threshold * baseline.value + baseline.dispersion + current.dispersion
    worse_by = -delta if higher_is_better else delta

    if worse_by > tolerance:
        verdict = Verdict.REGRESSED
    elif worse_by < -tolerance:
        verdict = Verdict.IMPROVED
    else:
        verdict = Verdict.STABLE
    return verdict, delta, tolerance


class RegressionDetector:
    """Detect regressions of an entry against the history of its suite.

    Attributes:
        config: Detector configuration.

    Example:
        >>> detector = RegressionDetector(DetectorConfig(regression_threshold=0.10))
        >>> result = detector.analyze(history, entry)
        >>> if result.has_regressions:
        ...     print(result.summary())
    """

    def __init__(self, config: DetectorConfig) -> None:
        """Initialize detector.

        Args:
            config: Detector configuration, including the threshold.
        """
        self.config = config

    def analyze(self, history: SuiteHistory, latest: Entry) -> DetectionResult:
        """Classify every benchmark of an entry, with the numbers behind each verdict.

        The baseline of a benchmark is the most recent entry appended before
        ``latest`` (arrival order, not commit time) that reports it.
        ``latest`` itself and anything appended after it are never used.

        Args:
            history: History of the suite; may or may not contain ``latest``.
            latest: Entry to check.

        Returns:
            DetectionResult with one verdict per benchmark of ``latest``.
        """
        higher_is_better = self.config.resolve_higher_is_better(latest.tool)
        threshold = self.config.regression_threshold
        prior = _prior_entries(history, latest)

        result = DetectionResult(
            commit_id=latest.commit.id,
            suite=history.suite,
            threshold=threshold,
            higher_is_better=higher_is_better,
        )

        for name, current in latest.benches.items():
            baseline_entry = _find_baseline(prior, name)
            baseline = baseline_entry.benches[name] if baseline_entry is not None else None

            if baseline is not None and baseline.unit != current.unit:
                logger.warning(
                    f"Benchmark {name} changed unit from {baseline.unit} to {current.unit}; not comparing"
                )
                baseline = None

            if baseline_entry is None or baseline is None:
                result.verdicts[name] = BenchmarkVerdict(
                    name=name,
                    verdict=Verdict.INSUFFICIENT_HISTORY,
                    value=current.value,
                    dispersion=current.dispersion,
                    unit=current.unit,
                )
                continue

            verdict, delta, tolerance = classify(current, baseline, threshold, higher_is_better)
            result.verdicts[name] = BenchmarkVerdict(
                name=name,
                verdict=verdict,
                value=current.value,
                dispersion=current.dispersion,
                unit=current.unit,
                baseline_value=baseline.value,
                baseline_dispersion=baseline.dispersion,
                baseline_commit_id=baseline_entry.commit.id,
                delta=delta,
                tolerance=tolerance,
                ratio=current.value / baseline.value if baseline.value > 0 else None,
            )

        if result.has_regressions:
            logger.info(f"{len(result.regressions)} regressions in {latest.commit.id} [{history.suite}]")
        return result

    def detect(self, history: SuiteHistory, latest: Entry) -> dict[str, Verdict]:
        """Classify every benchmark of an entry.

        Returns:
            Benchmark name to Verdict.
        """
        return self.analyze(history, latest).verdict_map()


def analyze(history: SuiteHistory, latest: Entry, config: DetectorConfig) -> DetectionResult:
    """Functional form of ``RegressionDetector.analyze``."""
    return RegressionDetector(config).analyze(history, latest)


def detect(history: SuiteHistory, latest: Entry, config: DetectorConfig) -> dict[str, Verdict]:
    """Functional form of ``RegressionDetector.detect``.

    Example:
        >>> detect(history, entry, DetectorConfig(regression_threshold=0.10))
        {'bench_parse': <Verdict.STABLE: 'stable'>}
    """
    return RegressionDetector(config).detect(history, latest)
