"""Invoker that runs every build of a scenario in one warm Gradle daemon."""

from __future__ import annotations

import logging

from bench_engine.gradle.connection import ProjectConnection
from bench_engine.gradle.pid import PidInstrumentation
from bench_engine.invoker.base import report_build
from bench_engine.models.result import BuildInvocationResult, ResultConsumer
from bench_engine.reporting import RunReporter

logger = logging.getLogger(__name__)


class ToolingApiInvoker:
    """Run builds through the scenario's :class:`ProjectConnection`.

    The same JVM arguments are passed to every build, so Gradle hands each
    one to the daemon started by the first build.
    """

    def __init__(
        self,
        connection: ProjectConnection,
        jvm_args: list[str],
        gradle_args: list[str],
        pid_instrumentation: PidInstrumentation,
        results_consumer: ResultConsumer,
        reporter: RunReporter,
    ) -> None:
        self._connection = connection
        self._jvm_args = list(jvm_args)
        self._gradle_args = list(gradle_args)
        self._pid_instrumentation = pid_instrumentation
        self._results_consumer = results_consumer
        self._reporter = reporter

    def run_build(self, display_name: str, tasks: list[str], *, record: bool = True) -> BuildInvocationResult:
        self._reporter.start_operation(f"Running {display_name}")
        logger.debug("Daemon build of %s", " ".join(tasks))
        outcome = self._connection.run_build(tasks, self._jvm_args, self._gradle_args)
        pid = self._pid_instrumentation.get_pid_for_last_build()
        return report_build(
            self._reporter,
            self._results_consumer,
            display_name,
            outcome.duration,
            pid,
            record=record,
        )
