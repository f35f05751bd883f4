"""Rich output formatting for the buildbench CLI.

All functions write to a :class:`rich.console.Console` instance passed in by
the caller, so tests can capture the rendering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from bench_engine.engine import RunOutcome
    from bench_engine.models.scenario import BuckScenarioDefinition, GradleScenarioDefinition
    from bench_engine.models.settings import InvocationSettings
    from bench_engine.results import ScenarioStatistics


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def display_settings(console: Console, settings: InvocationSettings) -> None:
    """Render the run settings as a panel.

    Parameters
    ----------
    console:
        Rich console to write to.
    settings:
        The resolved invocation settings.
    """
    width = max(len(label) for label, _ in settings.describe())
    lines = [f"[bold]{label + ':':<{width + 1}}[/bold] {escape(value)}" for label, value in settings.describe()]
    console.print(Panel("\n".join(lines), title="Settings", border_style="blue"))


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def display_scenarios(
    console: Console,
    scenarios: list[GradleScenarioDefinition | BuckScenarioDefinition],
) -> None:
    """Render one table per scenario, in execution order."""
    if not scenarios:
        console.print("[dim]No scenarios to run.[/dim]")
        return

    for idx, scenario in enumerate(scenarios, start=1):
        table = Table(
            title=f"Scenario {idx}/{len(scenarios)}: {scenario.display_name}",
            show_header=False,
            pad_edge=True,
            expand=False,
        )
        table.add_column("Setting", style="bold")
        table.add_column("Value")
        table.add_row("Output dir", escape(str(scenario.output_dir)))
        for label, value in scenario.describe():
            table.add_row(escape(label), escape(value))
        console.print(table)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def display_results_summary(console: Console, summary: list[ScenarioStatistics]) -> None:
    """Render mean/median/stddev of the measured builds of each scenario."""
    if not summary:
        console.print("[dim]No measured builds were recorded.[/dim]")
        return

    table = Table(title="Results", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Scenario", style="bold")
    table.add_column("Builds", justify="right")
    table.add_column("Mean (ms)", justify="right")
    table.add_column("Median (ms)", justify="right")
    table.add_column("Std dev (ms)", justify="right")
    table.add_column("Min (ms)", justify="right", style="dim")
    table.add_column("Max (ms)", justify="right", style="dim")

    for stats in summary:
        table.add_row(
            escape(stats.scenario),
            str(stats.count),
            f"{stats.mean_ms:.1f}",
            f"{stats.median_ms:.1f}",
            f"{stats.stddev_ms:.1f}",
            f"{stats.min_ms:.0f}",
            f"{stats.max_ms:.0f}",
        )

    console.print(table)


def display_failures(console: Console, outcome: RunOutcome) -> None:
    """List the scenarios that failed, if any."""
    failures = outcome.failures
    if not failures:
        return
    console.print()
    console.print(f"[red bold]{len(failures)} of {len(outcome.outcomes)} scenario(s) failed:[/red bold]")
    for failure in failures:
        console.print(
            f"  [red]x[/red] {escape(failure.scenario)}: {escape(str(failure.error))}", highlight=False, soft_wrap=True
        )
