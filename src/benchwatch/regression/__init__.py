"""Regression detection module for benchwatch.

This module classifies each benchmark of a newly recorded Entry as
improved, stable or regressed against its most recent baseline, or
reports that no baseline exists yet.

Example:
    >>> from benchwatch.regression import DetectorConfig, RegressionDetector
    >>>
    >>> detector = RegressionDetector(DetectorConfig(regression_threshold=0.10))
    >>> result = detector.analyze(history, entry)
    >>> if result.has_regressions:
    ...     print("Regressions detected!")
"""

from __future__ import annotations

from benchwatch.regression.detector import RegressionDetector, analyze, classify, detect
from benchwatch.regression.models import (
    BenchmarkVerdict,
    DetectionResult,
    DetectorConfig,
    Verdict,
)

__all__ = [
    "BenchmarkVerdict",
    "DetectionResult",
    "DetectorConfig",
    "RegressionDetector",
    "Verdict",
    "analyze",
    "classify",
    "detect",
]
