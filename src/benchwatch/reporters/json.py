"""JSON reporter for benchwatch.

This module provides JSON output for regression detection results,
suitable for CI/CD pipelines and alerting hooks.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from benchwatch.history.codec import format_range

if TYPE_CHECKING:
    from benchwatch.regression.models import DetectionResult


class JSONReporter:
    """Reporter that outputs regression verdicts as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report(result))
        {
          "timestamp": "2024-01-15T10:30:00+00:00",
          "commit": "9cf8e98...",
          "has_regressions": true,
          "benchmarks": {
            "bench_parse": {"verdict": "regressed", "value": 1320, ...},
            ...
          }
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def _get_timestamp(self) -> str:
        """Get current timestamp in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    def to_dict(self, result: DetectionResult, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        """Convert a detection result to a dictionary.

        Args:
            result: The detection result to convert.
            metadata: Optional metadata to include.

        Returns:
            Dictionary representation of the result.
        """
        benchmarks: dict[str, Any] = {}
        for name, item in result.verdicts.items():
            benchmarks[name] = {
                "verdict": item.verdict.value,
                "value": item.value,
                "range": format_range(item.dispersion),
                "unit": item.unit,
                "baseline": (
                    {
                        "commit": item.baseline_commit_id,
                        "value": item.baseline_value,
                        "range": format_range(item.baseline_dispersion or 0.0),
                    }
                    if item.baseline_value is not None
                    else None
                ),
                "delta": item.delta,
                "tolerance": item.tolerance,
                "ratio": item.ratio,
            }

        return {
            "timestamp": self._get_timestamp(),
            "commit": result.commit_id,
            "suite": result.suite,
            "threshold": result.threshold,
            "higher_is_better": result.higher_is_better,
            "has_regressions": result.has_regressions,
            "counts": {verdict.value: count for verdict, count in result.counts().items()},
            "benchmarks": benchmarks,
            "metadata": metadata or {},
        }

    def report(self, result: DetectionResult, metadata: dict[str, Any] | None = None) -> str:
        """Generate JSON report for a detection result.

        Args:
            result: The detection result to report.
            metadata: Optional metadata to include in the report.

        Returns:
            JSON string representation of the result.
        """
        return json.dumps(self.to_dict(result, metadata), indent=self.indent)

    def report_to_file(
        self,
        result: DetectionResult,
        path: Path | str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Write JSON report to a file.

        Args:
            result: The detection result to report.
            path: Path to the output file.
            metadata: Optional metadata to include in the report.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(result, metadata))
