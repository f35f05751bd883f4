"""Invoker that runs every build in a freshly launched Gradle process.

The JVM arguments are given both to the launcher JVM (``GRADLE_OPTS``) and
as ``org.gradle.jvmargs``.  Since they match, Gradle executes the build in
the launched process instead of forking a single-use daemon, so each build
reports the id of its own short-lived process.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from bench_engine.command import CommandExec
from bench_engine.gradle.connection import jvm_args_property
from bench_engine.gradle.pid import PidInstrumentation
from bench_engine.gradle.version import GradleVersion
from bench_engine.invoker.base import report_build
from bench_engine.models.result import BuildInvocationResult, ResultConsumer
from bench_engine.reporting import RunReporter

logger = logging.getLogger(__name__)


class NoDaemonInvoker:
    """Launch ``gradle --no-daemon`` for every build."""

    def __init__(
        self,
        version: GradleVersion,
        java_home: Path | None,
        project_dir: Path,
        jvm_args: list[str],
        gradle_args: list[str],
        pid_instrumentation: PidInstrumentation,
        results_consumer: ResultConsumer,
        reporter: RunReporter,
        command_exec: CommandExec | None = None,
    ) -> None:
        self._version = version
        self._jvm_args = list(jvm_args)
        self._gradle_args = list(gradle_args)
        self._pid_instrumentation = pid_instrumentation
        self._results_consumer = results_consumer
        self._reporter = reporter

        env = {"GRADLE_OPTS": shlex.join(self._jvm_args)}
        if java_home is not None:
            env["JAVA_HOME"] = str(java_home)
        self._command_exec = (command_exec or CommandExec()).in_dir(project_dir).with_env(**env)

    def command_line(self, tasks: list[str]) -> list[str]:
        return [
            str(self._version.executable),
            "--no-daemon",
            jvm_args_property(self._jvm_args),
            *self._gradle_args,
            *tasks,
        ]

    def run_build(self, display_name: str, tasks: list[str], *, record: bool = True) -> BuildInvocationResult:
        self._reporter.start_operation(f"Running {display_name}")
        outcome = self._command_exec.run(self.command_line(tasks))
        pid = self._pid_instrumentation.get_pid_for_last_build()
        return report_build(
            self._reporter,
            self._results_consumer,
            display_name,
            outcome.duration,
            pid,
            record=record,
        )
