"""Unit tests for the pytest-benchmark normalizer."""

from __future__ import annotations

import json

import pytest

from benchwatch.core.exceptions import MalformedOutputError
from benchwatch.normalizers import normalize

PYTEST_REPORT = {
    "machine_info": {"python_version": "3.12.1"},
    "benchmarks": [
        {
            "group": None,
            "name": "test_fib_10",
            "fullname": "tests/test_fib.py::test_fib_10",
            "stats": {
                "min": 0.0009,
                "max": 0.0012,
                "mean": 0.001,
                "stddev": 0.0001,
                "rounds": 50,
                "ops": 1000.0,
            },
        },
        {
            "group": None,
            "name": "test_fib_20",
            "fullname": "tests/test_fib.py::test_fib_20",
            "stats": {"mean": 0.25, "stddev": 0.0, "rounds": 5, "ops": 4.0},
        },
    ],
}


class TestPytestBenchmarkNormalizer:
    """Tests for pytest-benchmark JSON parsing."""

    def test_parse(self) -> None:
        """Test benchmarks become throughput measurements."""
        result = normalize(json.dumps(PYTEST_REPORT), "pytest")

        assert list(result) == ["tests/test_fib.py::test_fib_10", "tests/test_fib.py::test_fib_20"]
        fib10 = result["tests/test_fib.py::test_fib_10"]
        assert fib10.value == 1000.0
        assert fib10.unit == "iter/sec"
        assert fib10.dispersion == pytest.approx(100.0)
        assert fib10.extra == "mean: 0.001 sec\nrounds: 50"

    def test_zero_stddev(self) -> None:
        """Test a zero stddev gives zero dispersion."""
        result = normalize(json.dumps(PYTEST_REPORT), "pytest")

        assert result["tests/test_fib.py::test_fib_20"].dispersion == 0.0

    def test_invalid_json(self) -> None:
        """Test invalid JSON is malformed output."""
        with pytest.raises(MalformedOutputError, match="invalid JSON"):
            normalize("{not json", "pytest")

    def test_missing_benchmarks(self) -> None:
        """Test reports without a benchmarks list are malformed."""
        with pytest.raises(MalformedOutputError, match="benchmarks"):
            normalize('{"machine_info": {}}', "pytest")

    def test_missing_stats(self) -> None:
        """Test benchmarks without stats are malformed."""
        with pytest.raises(MalformedOutputError):
            normalize('{"benchmarks": [{"fullname": "t"}]}', "pytest")
