"""Console reporter for benchwatch.

This module renders regression detection results as a table on a
terminal, with colored verdicts.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from benchwatch.history.codec import format_range
from benchwatch.regression.models import Verdict

if TYPE_CHECKING:
    from benchwatch.regression.models import BenchmarkVerdict, DetectionResult


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"


VERDICT_STYLES: dict[Verdict, tuple[str, str]] = {
    Verdict.REGRESSED: ("regressed", Colors.RED),
    Verdict.IMPROVED: ("improved", Colors.GREEN),
    Verdict.STABLE: ("stable", Colors.DIM),
    Verdict.INSUFFICIENT_HISTORY: ("new", Colors.YELLOW),
}


class ConsoleReporter:
    """Reporter that outputs regression verdicts to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report(result)
          Regression check for 9cf8e9829f1c [Benchmark] (threshold: 10.0%)
          ┌──────────────────────────┬─────────────┬─────────────┬──────────┬───────────┐
          │ Benchmark                │    Baseline │     Current │   Change │ Verdict   │
          ├──────────────────────────┼─────────────┼─────────────┼──────────┼───────────┤
          │ bench__bench_parse       │ 1168 ± 3    │ 1320 ± 4    │   +13.0% │ regressed │
          └──────────────────────────┴─────────────┴─────────────┴──────────┴───────────┘
    """

    def __init__(self, use_colors: bool = True, output: TextIO | None = None) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.output = output or sys.stdout
        self.use_colors = use_colors and _supports_color(self.output)

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    @staticmethod
    def _value(value: float | None, dispersion: float | None) -> str:
        if value is None:
            return "-"
        return f"{value:g} {format_range(dispersion or 0.0)}"

    def _row(self, item: BenchmarkVerdict, name_width: int) -> str:
        label, color = VERDICT_STYLES[item.verdict]
        change = item.change_percent
        change_text = f"{change:+.1f}%" if change is not None else "-"
        verdict_text = self._color(f"{label:<9}", color)
        return (
            f"  │ {item.name:<{name_width}} "
            f"│ {self._value(item.baseline_value, item.baseline_dispersion):>15} "
            f"│ {self._value(item.value, item.dispersion):>15} "
            f"│ {change_text:>8} "
            f"│ {verdict_text} │"
        )

    def report(self, result: DetectionResult) -> None:
        """Report the verdicts of one detection result.

        Args:
            result: The detection result to render.
        """
        name_width = max([len("Benchmark"), *(len(name) for name in result.verdicts)])
        widths = [name_width + 2, 17, 17, 10, 11]

        def border(left: str, mid: str, right: str) -> str:
            return "  " + left + mid.join("─" * w for w in widths) + right

        self._print()
        self._print(
            self._color(
                f"  Regression check for {result.commit_id[:12]} [{result.suite}] "
                f"(threshold: {result.threshold * 100:.1f}%)",
                Colors.BOLD,
            )
        )
        self._print(border("┌", "┬", "┐"))
        self._print(
            f"  │ {'Benchmark':<{name_width}} │ {'Baseline':>15} │ {'Current':>15} │ {'Change':>8} │ {'Verdict':<9} │"
        )
        self._print(border("├", "┼", "┤"))
        for item in result.verdicts.values():
            self._print(self._row(item, name_width))
        self._print(border("└", "┴", "┘"))

        regressions = result.regressions
        if regressions:
            self._print(self._color(f"  {len(regressions)} benchmark(s) regressed", Colors.RED))
        else:
            self._print(self._color("  No regressions detected.", Colors.GREEN))
        self._print()


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors.

    Args:
        stream: Output stream to check.

    Returns:
        True if colors are supported, False otherwise.
    """
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("TERM") != "dumb"
