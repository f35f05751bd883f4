"""Tests for cli/cli/display.py -- Rich output formatting.

Rendered output is captured via a Console writing to a StringIO buffer.
"""

from __future__ import annotations

import io
from pathlib import Path

from rich.console import Console

from bench_engine.engine import RunOutcome, ScenarioOutcome
from bench_engine.gradle.version import GradleVersion
from bench_engine.models.scenario import BuckScenarioDefinition, GradleScenarioDefinition
from bench_engine.models.settings import InvocationSettings
from bench_engine.results import ScenarioStatistics

from cli.display import (
    display_failures,
    display_results_summary,
    display_scenarios,
    display_settings,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _capture_console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    console = Console(file=buf, no_color=True, highlight=False, width=160)
    return console, buf


def _gradle(tmp_path: Path, **overrides) -> GradleScenarioDefinition:
    values = dict(
        name="assemble",
        version=GradleVersion(version="8.5", gradle_home=tmp_path / "g"),
        tasks=["assemble", "test"],
        system_properties={"org.gradle.caching": "true"},
        warm_up_count=2,
        build_count=5,
        output_dir=tmp_path / "out",
    )
    values.update(overrides)
    return GradleScenarioDefinition(**values)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestDisplaySettings:
    def test_lists_every_setting(self, tmp_path):
        console, buf = _capture_console()
        settings = InvocationSettings(
            project_dir=tmp_path,
            output_dir=tmp_path / "out",
            gradle_user_home=tmp_path / "guh",
            benchmark=True,
            targets=["assemble"],
        )

        display_settings(console, settings)

        output = buf.getvalue()
        assert "Settings" in output
        for label, _ in settings.describe():
            assert f"{label}:" in output

    def test_values_are_not_markup(self, tmp_path):
        console, buf = _capture_console()
        settings = InvocationSettings(
            project_dir=tmp_path,
            output_dir=tmp_path / "out",
            gradle_user_home=tmp_path / "guh",
            targets=["[bold]x[/bold]"],
        )

        display_settings(console, settings)

        assert "[bold]x[/bold]" in buf.getvalue()


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestDisplayScenarios:
    def test_gradle_scenario(self, tmp_path):
        console, buf = _capture_console()

        display_scenarios(console, [_gradle(tmp_path)])

        output = buf.getvalue()
        assert "Scenario 1/1: assemble using Gradle 8.5" in output
        assert "assemble test" in output
        assert "-Dorg.gradle.caching" in output
        assert "Warm-ups" in output

    def test_numbered_in_order(self, tmp_path):
        console, buf = _capture_console()
        buck = BuckScenarioDefinition(
            name="lib", targets=["//a:a"], warm_up_count=1, build_count=1, output_dir=tmp_path / "b"
        )

        display_scenarios(console, [_gradle(tmp_path), buck])

        output = buf.getvalue()
        first = output.index("Scenario 1/2: assemble using Gradle 8.5")
        second = output.index("Scenario 2/2: lib using buck")
        assert first < second
        assert "//a:a" in output

    def test_empty(self):
        console, buf = _capture_console()
        display_scenarios(console, [])
        assert "No scenarios to run" in buf.getvalue()


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TestDisplayResultsSummary:
    def test_table(self):
        console, buf = _capture_console()
        stats = ScenarioStatistics(
            scenario="assemble using Gradle 8.5",
            count=3,
            mean_ms=120.0,
            median_ms=110.0,
            stddev_ms=14.142,
            min_ms=100.0,
            max_ms=150.0,
        )

        display_results_summary(console, [stats])

        output = buf.getvalue()
        assert "Results" in output
        assert "assemble using Gradle 8.5" in output
        assert "120.0" in output
        assert "14.1" in output
        assert "150" in output

    def test_no_measured_builds(self):
        console, buf = _capture_console()
        display_results_summary(console, [])
        assert "No measured builds were recorded" in buf.getvalue()


class TestDisplayFailures:
    def test_lists_failures(self):
        console, buf = _capture_console()
        outcome = RunOutcome(
            outcomes=(
                ScenarioOutcome("a using Gradle 8.5", RuntimeError("boom")),
                ScenarioOutcome("b using Gradle 8.5"),
            )
        )

        display_failures(console, outcome)

        output = buf.getvalue()
        assert "1 of 2 scenario(s) failed" in output
        assert "a using Gradle 8.5: boom" in output
        assert "b using Gradle 8.5" not in output

    def test_silent_when_all_succeeded(self):
        console, buf = _capture_console()
        display_failures(console, RunOutcome(outcomes=(ScenarioOutcome("a"),)))
        assert buf.getvalue() == ""
