"""buildbench CLI application -- Typer-based front end of the benchmark engine.

Resolves the command line into :class:`InvocationSettings`, loads the
scenarios, and hands them to the scenario engine.  The run transcript goes
to *stdout*; settings, scenario tables, the results summary and errors go
to *stderr* via Rich.

Exit codes: ``0`` when every scenario succeeded, ``1`` when the run could
not be configured, any scenario failed, or an unexpected error occurred.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from cli.display import (
    display_failures,
    display_results_summary,
    display_scenarios,
    display_settings,
)

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="buildbench",
    help="buildbench - benchmark and profile Gradle and Buck builds",
    add_completion=False,
)
console = Console(stderr=True)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_system_properties(values: list[str]) -> dict[str, str]:
    """Turn ``key=value`` pairs into a mapping.  A bare ``key`` maps to ``"true"``."""
    properties: dict[str, str] = {}
    for value in values:
        key, sep, prop = value.partition("=")
        if not key:
            raise ValueError(f"Invalid system property '{value}', expected key=value")
        properties[key] = prop if sep else "true"
    return properties


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@app.command()
def run(
    targets: list[str] | None = typer.Argument(
        None,
        help="Tasks to run, or scenario names when --scenario-file is given.",
        show_default=False,
    ),
    project_dir: Path = typer.Option(
        Path("."),
        "--project-dir",
        help="Directory of the build to benchmark.",
    ),
    output_dir: Path = typer.Option(
        Path("profile-out"),
        "--output-dir",
        help="Directory receiving results, the detail log and profiler output.",
    ),
    gradle_user_home: Path = typer.Option(
        Path("gradle-user-home"),
        "--gradle-user-home",
        help="Gradle user home used for every build.",
    ),
    gradle_versions: list[str] | None = typer.Option(
        None,
        "--gradle-version",
        help="Gradle version or installation directory to run with. Repeatable.",
    ),
    benchmark: bool = typer.Option(False, "--benchmark", help="Collect timings into a results table."),
    profile: str | None = typer.Option(None, "--profile", help="Profile measured builds with this profiler (jfr)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Run builds with --dry-run."),
    scenario_file: Path | None = typer.Option(None, "--scenario-file", help="YAML file defining scenarios."),
    warmups: int | None = typer.Option(None, "--warmups", help="Number of warm-up builds."),
    iterations: int | None = typer.Option(None, "--iterations", help="Number of measured builds."),
    no_daemon: bool = typer.Option(False, "--no-daemon", help="Run every build in a fresh process."),
    buck: bool = typer.Option(False, "--buck", help="Run the 'buck' variant of each scenario."),
    system_properties: list[str] | None = typer.Option(
        None,
        "-D",
        help="System property key=value passed to every build. Repeatable.",
    ),
) -> None:
    """Run benchmark and profiling scenarios."""
    from pydantic import ValidationError

    from bench_engine.command import CommandExec
    from bench_engine.config import load_settings
    from bench_engine.engine import ScenarioEngine
    from bench_engine.errors import ConfigurationError, ScenarioFailedError, SettingsNotAvailableError
    from bench_engine.gradle.version import GradleVersionInspector
    from bench_engine.loader import ScenarioLoader
    from bench_engine.models.scenario import InvokerKind
    from bench_engine.models.settings import InvocationSettings
    from bench_engine.profiler import get_profiler
    from bench_engine.reporting import RunReporter, setup_logging

    try:
        bench_settings = load_settings()
        try:
            properties = _parse_system_properties(system_properties or [])
            profiler = get_profiler(profile, bench_settings)
            settings = InvocationSettings(
                project_dir=project_dir,
                output_dir=output_dir,
                gradle_user_home=gradle_user_home,
                benchmark=benchmark,
                profile=profile is not None,
                dry_run=dry_run,
                profiler=profiler,
                scenario_file=scenario_file,
                targets=targets or [],
                versions=gradle_versions or [],
                invoker=InvokerKind.NO_DAEMON if no_daemon else InvokerKind.TOOLING_API,
                system_properties=properties,
                warm_up_count=warmups,
                build_count=iterations,
                buck=buck,
            )
        except (ValueError, ValidationError) as exc:
            raise SettingsNotAvailableError(str(exc)) from exc

        console.print(f"* Writing results to {settings.output_dir}", highlight=False)
        log_file = setup_logging(settings.output_dir, bench_settings)
        reporter = RunReporter()
        reporter.detail(f"* Started at {datetime.now().isoformat(timespec='seconds')}")
        reporter.detail(f"* Detail log at {log_file}")

        display_settings(console, settings)
        for label, value in settings.describe():
            reporter.detail(f"{label}: {value}")

        inspector = GradleVersionInspector(
            settings.project_dir,
            settings.gradle_user_home,
            fallback_home=bench_settings.gradle_home,
            command_exec=CommandExec(timeout=bench_settings.control_command_timeout_seconds),
        )
        scenarios = ScenarioLoader(inspector).load(settings)
        display_scenarios(console, scenarios)

        with ScenarioEngine(settings, reporter, bench_settings=bench_settings) as engine:
            outcome = engine.run(scenarios)
            display_results_summary(console, engine.results.summary())

        display_failures(console, outcome)
        outcome.raise_if_failed()

    except typer.Exit:
        raise
    except ConfigurationError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]", highlight=False, soft_wrap=True)
        raise typer.Exit(code=1) from exc
    except ScenarioFailedError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]", highlight=False, soft_wrap=True)
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        logger.exception("Unexpected error during run")
        console.print_exception()
        raise typer.Exit(code=1) from exc
