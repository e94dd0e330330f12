"""benchwatch: continuous micro-benchmark tracking with regression detection."""

from __future__ import annotations

from benchwatch.core.types import CommitRef, Entry, Measurement, Person
from benchwatch.history import (
    JSONFileStore,
    MemoryHistoryStore,
    MergeOutcome,
    SuiteHistory,
    merge,
)
from benchwatch.ingest import Ingestor, IngestResult
from benchwatch.normalizers import available_tools, normalize
from benchwatch.regression import (
    DetectionResult,
    DetectorConfig,
    RegressionDetector,
    Verdict,
    analyze,
    detect,
)

__version__ = "0.3.0"
__all__ = [
    # Types
    "CommitRef",
    "Entry",
    "Measurement",
    "Person",
    # Normalization
    "available_tools",
    "normalize",
    # History
    "JSONFileStore",
    "MemoryHistoryStore",
    "MergeOutcome",
    "SuiteHistory",
    "merge",
    # Regression detection
    "DetectionResult",
    "DetectorConfig",
    "RegressionDetector",
    "Verdict",
    "analyze",
    "detect",
    # Pipeline
    "IngestResult",
    "Ingestor",
    "__version__",
]
