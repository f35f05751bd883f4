"""Accumulate build measurements and write them as a CSV table.

One column per scenario, one row per build label (clean build, warm-ups,
then measured builds, each in order).  The table is always
written whole: every call to :meth:`BenchmarkResults.write_to` replaces the
file with everything collected so far, so the file on disk is complete up
to the last flush even if the process dies later in the run.

Layout::

    scenario,<scenario 1>,<scenario 2>,...
    version,<gradle version | buck>,...
    tasks,<tasks or targets>,...
    initial clean build,<ms>,...
    warm-up build 1,<ms>,...
    ...
    build 1,<ms>,...
    ...
    mean,<ms>,...
    median,<ms>,...
    stddev,<ms>,...

Statistics cover measured builds (``build N``) only.
"""

from __future__ import annotations

import csv
import logging
import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from bench_engine.models.result import (
    INITIAL_CLEAN_BUILD,
    MEASURED_BUILD_PREFIX,
    WARM_UP_BUILD_PREFIX,
    BuildInvocationResult,
)
from bench_engine.models.scenario import BuckScenarioDefinition, GradleScenarioDefinition, ScenarioKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioStatistics:
    """Aggregate of the measured builds of one scenario, in milliseconds."""

    scenario: str
    count: int
    mean_ms: float
    median_ms: float
    stddev_ms: float
    min_ms: float
    max_ms: float


def _percentile(sorted_data: list[float], p: float) -> float:
    """Compute the p-th percentile using linear interpolation."""
    if not sorted_data:
        return 0.0
    n = len(sorted_data)
    k = (p / 100.0) * (n - 1)
    floor_k = int(k)
    ceil_k = min(floor_k + 1, n - 1)
    frac = k - floor_k
    return sorted_data[floor_k] + frac * (sorted_data[ceil_k] - sorted_data[floor_k])


def _label_order(label: str) -> tuple[int, int, str]:
    """Sort key placing the clean build first, then warm-ups, then measured builds."""
    if label == INITIAL_CLEAN_BUILD:
        return (0, 0, label)
    for rank, prefix in ((1, WARM_UP_BUILD_PREFIX), (2, MEASURED_BUILD_PREFIX)):
        suffix = label.removeprefix(prefix)
        if suffix != label and suffix.isdigit():
            return (rank, int(suffix), label)
    return (3, 0, label)


class ScenarioResults:
    """Ordered results of one scenario.  Callable, so it can be used as a consumer."""

    def __init__(self, scenario: GradleScenarioDefinition | BuckScenarioDefinition) -> None:
        self.scenario = scenario
        self._results: list[BuildInvocationResult] = []

    def __call__(self, result: BuildInvocationResult) -> None:
        self._results.append(result)

    @property
    def results(self) -> tuple[BuildInvocationResult, ...]:
        return tuple(self._results)

    @property
    def measured(self) -> list[BuildInvocationResult]:
        return [r for r in self._results if r.is_measured]

    @property
    def version_label(self) -> str:
        if self.scenario.kind == ScenarioKind.GRADLE:
            return self.scenario.version.version
        return "buck"

    def statistics(self) -> ScenarioStatistics | None:
        """Return aggregate statistics, or ``None`` before the first measured build."""
        durations = sorted(float(r.execution_time_ms) for r in self.measured)
        if not durations:
            return None
        count = len(durations)
        mean = sum(durations) / count
        variance = sum((d - mean) ** 2 for d in durations) / count
        return ScenarioStatistics(
            scenario=self.scenario.display_name,
            count=count,
            mean_ms=round(mean, 3),
            median_ms=round(_percentile(durations, 50), 3),
            stddev_ms=round(math.sqrt(variance), 3),
            min_ms=durations[0],
            max_ms=durations[-1],
        )


class BenchmarkResults:
    """Results of every scenario of a run, in the order scenarios started."""

    def __init__(self) -> None:
        # Keyed by object identity: scenarios may share a display name.
        self._scenarios: dict[int, ScenarioResults] = {}

    def results_for(self, scenario: GradleScenarioDefinition | BuckScenarioDefinition) -> ScenarioResults:
        """Return the accumulator of *scenario*, creating it on first use."""
        key = id(scenario)
        if key not in self._scenarios:
            self._scenarios[key] = ScenarioResults(scenario)
        return self._scenarios[key]

    @property
    def scenarios(self) -> list[ScenarioResults]:
        return list(self._scenarios.values())

    def summary(self) -> list[ScenarioStatistics]:
        return [stats for stats in (s.statistics() for s in self._scenarios.values()) if stats is not None]

    def rows(self) -> list[list[str]]:
        """The CSV table as a list of rows."""
        columns = list(self._scenarios.values())
        rows: list[list[str]] = [
            ["scenario", *(c.scenario.display_name for c in columns)],
            ["version", *(c.version_label for c in columns)],
            ["tasks", *(c.scenario.tasks_display for c in columns)],
        ]

        cells = [{r.display_name: str(r.execution_time_ms) for r in c.results} for c in columns]
        labels = sorted({label for column in cells for label in column}, key=_label_order)
        for label in labels:
            rows.append([label, *(column.get(label, "") for column in cells)])

        stats = [c.statistics() for c in columns]
        for name, attr in (("mean", "mean_ms"), ("median", "median_ms"), ("stddev", "stddev_ms")):
            rows.append([name, *("" if s is None else f"{getattr(s, attr):.3f}" for s in stats)])
        return rows

    def write_to(self, path: Path) -> None:
        """Replace *path* with the full table."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                writer = csv.writer(fh)
                writer.writerows(self.rows())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote results of %d scenario(s) to %s", len(self._scenarios), path)
