"""Scenario execution engine.

Runs every scenario of a run exactly once, in order:

* **Gradle scenarios** stop any daemon of the scenario's version, open a
  connection, compute JVM and Gradle arguments, pick an invoker, then run
  an optional clean build, the warm-up builds and the measured builds.
  Every build after the first must honour the daemon-identity invariant
  (same pid for daemon builds, a different pid for no-daemon builds).
  Measured builds are optionally bracketed by a profiler and, when
  benchmarking, followed by a full flush of the results file.
* **Buck scenarios** resolve their targets and time ``buckw build``.

A failure inside one scenario is logged, recorded in the returned
:class:`RunOutcome` and does not stop the loop.  Mutator cleanup,
connection release and daemon shutdown always run once a scenario's body
has been entered.
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from bench_engine.command import CommandExec
from bench_engine.config import BenchSettings
from bench_engine.errors import DaemonUsedError, MultipleDaemonsError, ScenarioFailedError
from bench_engine.gradle.connection import BuildEnvironment, GradleConnector, ProjectConnection
from bench_engine.gradle.daemon import DaemonControl
from bench_engine.gradle.pid import PidInstrumentation
from bench_engine.invoker.base import BuildInvoker, report_build
from bench_engine.invoker.no_daemon import NoDaemonInvoker
from bench_engine.invoker.tooling_api import ToolingApiInvoker
from bench_engine.models.result import INITIAL_CLEAN_BUILD, ResultConsumer, measured_label, warm_up_label
from bench_engine.models.scenario import (
    BuckScenarioDefinition,
    GradleScenarioDefinition,
    InvokerKind,
    ScenarioKind,
)
from bench_engine.models.settings import InvocationSettings, ScenarioSettings
from bench_engine.mutator import BuildMutator
from bench_engine.profiler.base import NO_OP_CONTROLLER, identity_jvm_args
from bench_engine.reporting import RunReporter
from bench_engine.results import BenchmarkResults

logger = logging.getLogger(__name__)

CLEAN_TASK = "clean"
CLEANUP_BUILD = "cleanup"


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScenarioOutcome:
    """Whether one scenario completed, and why not if it did not."""

    scenario: str
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RunOutcome:
    """Outcome of every scenario of a run, in execution order."""

    outcomes: tuple[ScenarioOutcome, ...]
    results_file: Path | None = None

    @property
    def failures(self) -> list[ScenarioOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def first_failure(self) -> Exception | None:
        failures = self.failures
        return failures[0].error if failures else None

    def raise_if_failed(self) -> None:
        """Raise :class:`ScenarioFailedError` caused by the first failure, if any."""
        failures = self.failures
        if failures:
            raise ScenarioFailedError(len(failures)) from failures[0].error


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def check_pid(expected: str | None, actual: str | None, invoker: InvokerKind) -> None:
    """Enforce the daemon-identity invariant for one build.

    *expected* is the pid of the scenario's first build; every later build
    is compared against it, not against its predecessor.
    """
    if invoker == InvokerKind.TOOLING_API:
        if expected != actual:
            raise MultipleDaemonsError(expected, actual)
    elif invoker == InvokerKind.NO_DAEMON:
        if expected == actual:
            raise DaemonUsedError(expected, actual)
    else:
        raise ValueError(f"Unknown invoker {invoker!r}")


def clean_build_tasks(tasks: Sequence[str]) -> list[str]:
    """``clean`` followed by *tasks*, de-duplicated, order preserved."""
    return list(dict.fromkeys([CLEAN_TASK, *tasks]))


def system_property_args(properties: dict[str, str]) -> list[str]:
    return [f"-D{key}={value}" for key, value in properties.items()]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ScenarioEngine:
    """Execute scenarios and collect their results.

    Parameters
    ----------
    settings:
        The run's invocation settings.
    reporter:
        Transcript and detail log of the run.
    bench_settings:
        Process-wide configuration (results file name, timeouts, JVM defaults).
    daemon_control, connector, pid_instrumentation, results, command_exec:
        Collaborators; defaults are built from *settings* when omitted.
    """

    def __init__(
        self,
        settings: InvocationSettings,
        reporter: RunReporter,
        *,
        bench_settings: BenchSettings | None = None,
        daemon_control: DaemonControl | None = None,
        connector: GradleConnector | None = None,
        pid_instrumentation: PidInstrumentation | None = None,
        results: BenchmarkResults | None = None,
        command_exec: CommandExec | None = None,
    ) -> None:
        bench_settings = bench_settings or BenchSettings()
        control_timeout = bench_settings.control_command_timeout_seconds

        self._settings = settings
        self._reporter = reporter
        self._daemon_control = daemon_control or DaemonControl(
            settings.gradle_user_home,
            reporter,
            CommandExec(timeout=control_timeout),
        )
        self._connector = connector or GradleConnector(
            settings.gradle_user_home,
            bench_settings.default_jvm_args,
            control_timeout=control_timeout,
        )
        self._owns_pid_instrumentation = pid_instrumentation is None
        self._pid_instrumentation = pid_instrumentation or PidInstrumentation()
        self._results = results if results is not None else BenchmarkResults()
        self._command_exec = command_exec or CommandExec()
        self._results_file = settings.output_dir / bench_settings.results_file_name

    @property
    def results(self) -> BenchmarkResults:
        return self._results

    @property
    def results_file(self) -> Path:
        return self._results_file

    # -- Orchestration -------------------------------------------------------

    def run(self, scenarios: Sequence[GradleScenarioDefinition | BuckScenarioDefinition]) -> RunOutcome:
        """Run every scenario once, isolating failures, then write results."""
        total = len(scenarios)
        outcomes: list[ScenarioOutcome] = []

        for count, scenario in enumerate(scenarios, start=1):
            name = scenario.display_name
            self._reporter.start_operation(f"Running scenario {name} (scenario {count}/{total})")
            try:
                self.run_scenario(scenario)
            except Exception as exc:
                logger.exception("Scenario %s failed", name, extra={"scenario": name})
                self._reporter.line(f"Scenario {name} failed: {exc}")
                outcomes.append(ScenarioOutcome(scenario=name, error=exc))
            else:
                outcomes.append(ScenarioOutcome(scenario=name))

        if self._settings.benchmark:
            self._results.write_to(self._results_file)

        self._reporter.line()
        self._reporter.line(f"* Results written to {self._settings.output_dir}")

        outcome = RunOutcome(
            outcomes=tuple(outcomes),
            results_file=self._results_file if self._settings.benchmark else None,
        )
        for failure in outcome.failures:
            logger.error("Scenario %s failed: %s", failure.scenario, failure.error)
        return outcome

    def run_scenario(self, scenario: GradleScenarioDefinition | BuckScenarioDefinition) -> None:
        if scenario.kind == ScenarioKind.GRADLE:
            self.run_gradle_scenario(scenario)
        elif scenario.kind == ScenarioKind.BUCK:
            self.run_buck_scenario(scenario)
        else:
            raise ValueError(f"Unknown scenario kind {scenario.kind!r}")

    # -- Gradle --------------------------------------------------------------

    def run_gradle_scenario(self, scenario: GradleScenarioDefinition) -> None:
        settings = self._settings
        scenario_settings = ScenarioSettings(settings, scenario)
        scenario.output_dir.mkdir(parents=True, exist_ok=True)
        jvm_args_calculator = (
            settings.profiler.new_jvm_args_calculator(scenario_settings) if settings.profile else identity_jvm_args
        )
        version = scenario.version

        # A fresh daemon is needed to pick up this scenario's JVM arguments.
        self._daemon_control.stop(version)

        with ExitStack() as teardown:
            # Released in reverse: mutator, connection, daemon.
            teardown.callback(self._daemon_control.stop, version)
            connection = teardown.enter_context(self._connector.connect(version, settings.project_dir))
            mutator = scenario.mutator_factory()
            teardown.callback(mutator.cleanup)

            environment = connection.get_build_environment()
            self._report_environment(environment)

            jvm_args = jvm_args_calculator(
                list(environment.jvm_arguments) + system_property_args(scenario.system_properties)
            )
            gradle_args = self.gradle_args_for(scenario)
            self._reporter.detail("JVM args:")
            for arg in jvm_args:
                self._reporter.detail(f"  {arg}")
            self._reporter.detail("Gradle args:")
            for arg in gradle_args:
                self._reporter.detail(f"  {arg}")

            consumer = self._results.results_for(scenario)
            invoker = self._new_invoker(scenario, connection, environment, jvm_args, gradle_args, consumer)

            if settings.benchmark:
                invoker.run_build(INITIAL_CLEAN_BUILD, clean_build_tasks(scenario.tasks))
                # The clean build must not leave a warm daemon behind.
                self._daemon_control.stop(version)

            pid: str | None = None
            first = True
            for index in range(1, scenario.warm_up_count + 1):
                self._before_build(invoker, scenario.cleanup_tasks, mutator)
                result = invoker.run_build(warm_up_label(index), scenario.tasks)
                if first:
                    pid, first = result.daemon_pid, False
                else:
                    check_pid(pid, result.daemon_pid, scenario.invoker)

            for index in range(1, scenario.build_count + 1):
                self._before_build(invoker, scenario.cleanup_tasks, mutator)

                controller = (
                    settings.profiler.new_controller(pid, scenario_settings, invoker)
                    if settings.profile
                    else NO_OP_CONTROLLER
                )
                if settings.profile:
                    self._reporter.start_operation(f"Starting recording for daemon with pid {pid}")
                    controller.start()
                try:
                    result = invoker.run_build(measured_label(index), scenario.tasks)
                except Exception:
                    if settings.profile:
                        self._reporter.start_operation(f"Stopping recording for daemon with pid {pid}")
                        try:
                            controller.stop()
                        except Exception:
                            logger.exception("Could not stop recording for daemon with pid %s", pid)
                    raise
                if settings.profile:
                    self._reporter.start_operation(f"Stopping recording for daemon with pid {pid}")
                    controller.stop()

                if first:
                    pid, first = result.daemon_pid, False
                else:
                    check_pid(pid, result.daemon_pid, scenario.invoker)

                # Flush now so a crash later in the run keeps these results.
                if settings.benchmark:
                    self._results.write_to(self._results_file)

    def gradle_args_for(self, scenario: GradleScenarioDefinition) -> list[str]:
        args = list(self._pid_instrumentation.get_args())
        args += ["--gradle-user-home", str(self._settings.gradle_user_home)]
        args += system_property_args(scenario.system_properties)
        args += scenario.gradle_args
        if self._settings.dry_run:
            args.append("--dry-run")
        return args

    def _new_invoker(
        self,
        scenario: GradleScenarioDefinition,
        connection: ProjectConnection,
        environment: BuildEnvironment,
        jvm_args: list[str],
        gradle_args: list[str],
        consumer: ResultConsumer,
    ) -> BuildInvoker:
        if scenario.invoker == InvokerKind.NO_DAEMON:
            return NoDaemonInvoker(
                scenario.version,
                environment.java_home,
                self._settings.project_dir,
                jvm_args,
                gradle_args,
                self._pid_instrumentation,
                consumer,
                self._reporter,
                command_exec=self._command_exec,
            )
        if scenario.invoker == InvokerKind.TOOLING_API:
            return ToolingApiInvoker(
                connection,
                jvm_args,
                gradle_args,
                self._pid_instrumentation,
                consumer,
                self._reporter,
            )
        raise ValueError(f"Unknown invoker {scenario.invoker!r}")

    def _before_build(self, invoker: BuildInvoker, cleanup_tasks: list[str], mutator: BuildMutator) -> None:
        if cleanup_tasks:
            invoker.run_build(CLEANUP_BUILD, cleanup_tasks, record=False)
        mutator.before_build()

    def _report_environment(self, environment: BuildEnvironment) -> None:
        self._reporter.detail()
        self._reporter.detail("* Build details")
        self._reporter.detail(f"Gradle version: {environment.gradle_version}")
        self._reporter.detail(f"Java home: {environment.java_home or '(from PATH)'}")
        self._reporter.detail(f"OS name: {platform.system()} {platform.release()}")

    # -- Buck ----------------------------------------------------------------

    def buck_targets_for(self, scenario: BuckScenarioDefinition, buckw: str) -> list[str]:
        """Explicit targets followed by every target of the scenario's type."""
        targets = list(scenario.targets)
        if scenario.type is not None:
            self._reporter.start_operation(f"Query targets with type {scenario.type}")
            output = self._command_exec.in_dir(self._settings.project_dir).run_and_collect_output(
                [buckw, "targets", "--type", scenario.type]
            )
            targets += [line.strip() for line in output.split("\n") if line.strip()]
        return targets

    def run_buck_scenario(self, scenario: BuckScenarioDefinition) -> None:
        settings = self._settings
        buckw = str(settings.project_dir / "buckw")
        targets = self.buck_targets_for(scenario, buckw)

        self._reporter.line()
        self._reporter.line(f"* Buck targets: {targets}")

        command_line = [buckw, "build", *targets]
        build_exec = self._command_exec.in_dir(settings.project_dir)
        mutator = scenario.mutator_factory()
        try:
            consumer = self._results.results_for(scenario)
            for index in range(1, scenario.warm_up_count + 1):
                self._run_buck_build(warm_up_label(index), command_line, build_exec, mutator, consumer)
            for index in range(1, scenario.build_count + 1):
                self._run_buck_build(measured_label(index), command_line, build_exec, mutator, consumer)
                if settings.benchmark:
                    self._results.write_to(self._results_file)
        finally:
            mutator.cleanup()

    def _run_buck_build(
        self,
        display_name: str,
        command_line: list[str],
        build_exec: CommandExec,
        mutator: BuildMutator,
        consumer: ResultConsumer,
    ) -> None:
        mutator.before_build()
        self._reporter.start_operation(f"Running {display_name}")
        outcome = build_exec.run(command_line)
        report_build(self._reporter, consumer, display_name, outcome.duration, None, record=True)

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        if self._owns_pid_instrumentation:
            self._pid_instrumentation.close()

    def __enter__(self) -> ScenarioEngine:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()
