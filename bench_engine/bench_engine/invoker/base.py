"""Abstract interface for build invokers.

Every invoker -- whether it reuses a long-lived daemon or launches a fresh
process per build -- must satisfy the :class:`BuildInvoker` protocol so
that the scenario loop stays agnostic of how builds are launched.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from bench_engine.models.result import BuildInvocationResult, ResultConsumer
from bench_engine.reporting import RunReporter


class BuildInvoker(Protocol):
    """Structural interface for build invokers."""

    def run_build(self, display_name: str, tasks: list[str], *, record: bool = True) -> BuildInvocationResult:
        """Run one build of *tasks* and return its measurement.

        Parameters
        ----------
        display_name:
            Label of the build in the transcript and results table.
        tasks:
            Tasks to execute.
        record:
            When ``False`` the result is not passed to the results consumer
            (used for cleanup builds).
        """
        ...


def report_build(
    reporter: RunReporter,
    consumer: ResultConsumer,
    display_name: str,
    execution_time: timedelta,
    pid: str | None,
    *,
    record: bool,
) -> BuildInvocationResult:
    """Print the outcome of a build and hand its result to *consumer*."""
    if pid is not None:
        reporter.line(f"Used process with pid {pid}")
    result = BuildInvocationResult(display_name=display_name, execution_time=execution_time, daemon_pid=pid)
    reporter.line(f"Execution time {result.execution_time_ms}ms")
    if record:
        consumer(result)
    return result
