"""Unit tests for bench_engine.results."""

from __future__ import annotations

import csv
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from bench_engine.gradle.version import GradleVersion
from bench_engine.models.result import BuildInvocationResult
from bench_engine.models.scenario import BuckScenarioDefinition, GradleScenarioDefinition
from bench_engine.results import BenchmarkResults


def _gradle(name: str = "assemble") -> GradleScenarioDefinition:
    return GradleScenarioDefinition(
        name=name,
        version=GradleVersion(version="8.5", gradle_home=Path("/opt/gradle")),
        tasks=["assemble", "check"],
        warm_up_count=1,
        build_count=3,
        output_dir=Path("/tmp/out"),
    )


def _buck() -> BuckScenarioDefinition:
    return BuckScenarioDefinition(
        name="lib",
        targets=["//a:a"],
        type="java_library",
        warm_up_count=0,
        build_count=2,
        output_dir=Path("/tmp/out"),
    )


def _build(label: str, ms: int) -> BuildInvocationResult:
    return BuildInvocationResult(display_name=label, execution_time=timedelta(milliseconds=ms))


class TestScenarioResults:
    def test_statistics_cover_measured_builds_only(self):
        results = BenchmarkResults().results_for(_gradle())
        builds = [
            ("initial clean build", 9000),
            ("warm-up build 1", 5000),
            ("build 1", 100),
            ("build 2", 200),
            ("build 3", 600),
        ]
        for label, ms in builds:
            results(_build(label, ms))

        stats = results.statistics()

        assert stats is not None
        assert stats.count == 3
        assert stats.mean_ms == pytest.approx(300.0)
        assert stats.median_ms == pytest.approx(200.0)
        assert stats.stddev_ms == pytest.approx(216.025, abs=1e-3)
        assert (stats.min_ms, stats.max_ms) == (100, 600)

    def test_no_statistics_before_measured_builds(self):
        results = BenchmarkResults().results_for(_gradle())
        results(_build("warm-up build 1", 10))
        assert results.statistics() is None

    def test_same_accumulator_per_scenario(self):
        benchmark = BenchmarkResults()
        scenario = _gradle()
        assert benchmark.results_for(scenario) is benchmark.results_for(scenario)
        assert len(benchmark.scenarios) == 1

    def test_equal_scenarios_get_separate_accumulators(self):
        benchmark = BenchmarkResults()
        first = benchmark.results_for(_gradle())
        second = benchmark.results_for(_gradle())
        first(_build("build 1", 100))
        second(_build("build 1", 300))

        assert first is not second
        assert [stats.mean_ms for stats in benchmark.summary()] == [100.0, 300.0]
        rows = benchmark.rows()
        assert rows[0] == ["scenario", "assemble using Gradle 8.5", "assemble using Gradle 8.5"]
        assert ["build 1", "100", "300"] in rows


class TestBenchmarkResultsTable:
    def test_rows(self):
        benchmark = BenchmarkResults()
        gradle = benchmark.results_for(_gradle())
        buck = benchmark.results_for(_buck())
        gradle(_build("warm-up build 1", 50))
        gradle(_build("build 1", 100))
        gradle(_build("build 2", 300))
        buck(_build("build 1", 10))

        rows = benchmark.rows()

        assert rows[0] == ["scenario", "assemble using Gradle 8.5", "lib using buck"]
        assert rows[1] == ["version", "8.5", "buck"]
        assert rows[2] == ["tasks", "assemble check", "//a:a type=java_library"]
        assert rows[3:] == [
            ["warm-up build 1", "50", ""],
            ["build 1", "100", "10"],
            ["build 2", "300", ""],
            ["mean", "200.000", "10.000"],
            ["median", "200.000", "10.000"],
            ["stddev", "100.000", "0.000"],
        ]

    def test_write_to_replaces_file(self, tmp_path):
        benchmark = BenchmarkResults()
        benchmark.results_for(_gradle())(_build("build 1", 100))
        path = tmp_path / "nested" / "benchmark.csv"
        path.parent.mkdir()
        path.write_text("stale\n", encoding="utf-8")

        benchmark.write_to(path)

        with path.open(encoding="utf-8", newline="") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == ["scenario", "assemble using Gradle 8.5"]
        assert rows[3] == ["build 1", "100"]
        assert list(path.parent.iterdir()) == [path]

    def test_failed_write_leaves_previous_file(self, tmp_path):
        benchmark = BenchmarkResults()
        benchmark.results_for(_gradle())(_build("build 1", 100))
        path = tmp_path / "benchmark.csv"
        path.write_text("previous\n", encoding="utf-8")

        with patch("bench_engine.results.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                benchmark.write_to(path)

        assert path.read_text(encoding="utf-8") == "previous\n"
        assert list(tmp_path.iterdir()) == [path]

    def test_rows_ordered_by_label(self):
        benchmark = BenchmarkResults()
        results = benchmark.results_for(_gradle())
        for label in ["build 10", "build 2", "warm-up build 1", "initial clean build"]:
            results(_build(label, 1))
        assert [row[0] for row in benchmark.rows()[3:7]] == [
            "initial clean build",
            "warm-up build 1",
            "build 2",
            "build 10",
        ]

    def test_summary(self):
        benchmark = BenchmarkResults()
        benchmark.results_for(_gradle("a"))(_build("build 1", 100))
        benchmark.results_for(_gradle("b"))(_build("warm-up build 1", 100))
        assert [s.scenario for s in benchmark.summary()] == ["a using Gradle 8.5"]
