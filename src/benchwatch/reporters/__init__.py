"""Reporters for benchwatch.

Reporters render detection results for people (console) and machines
(JSON). Dispersion is formatted as ``"± N"`` only here.
"""

from __future__ import annotations

from benchwatch.reporters.console import ConsoleReporter
from benchwatch.reporters.json import JSONReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
]
