"""Error taxonomy for benchmark runs.

Two families matter to the orchestrator:

* :class:`ConfigurationError` -- raised before any scenario executes.  The
  run aborts and the process exits with status 1.
* :class:`ScenarioError` -- raised while one scenario executes.  The
  orchestrator records it, logs it, and moves on to the next scenario.

:class:`ScenarioFailedError` is the single run-level signal produced after
every scenario has been attempted; its ``__cause__`` is the first recorded
scenario failure.
"""

from __future__ import annotations


class BenchError(Exception):
    """Base exception for all bench_engine errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(BenchError):
    """The run could not be configured; no scenario was executed."""


class SettingsNotAvailableError(ConfigurationError):
    """Invocation settings could not be resolved from the given arguments."""


class ScenarioLoadError(ConfigurationError):
    """The scenario file or a requested tool version could not be resolved."""


# ---------------------------------------------------------------------------
# Scenario failures
# ---------------------------------------------------------------------------


class ScenarioError(BenchError):
    """A single scenario could not complete."""


class DaemonIdentityError(ScenarioError):
    """A build reported a process id that breaks the daemon-reuse invariant."""

    def __init__(self, message: str, expected_pid: str | None, actual_pid: str | None) -> None:
        super().__init__(message)
        self.expected_pid = expected_pid
        self.actual_pid = actual_pid


class MultipleDaemonsError(DaemonIdentityError):
    """A daemon-reusing scenario was served by more than one daemon."""

    def __init__(self, expected_pid: str | None, actual_pid: str | None) -> None:
        super().__init__(
            f"Multiple Gradle daemons were used (expected pid {expected_pid}, got {actual_pid}).",
            expected_pid,
            actual_pid,
        )


class DaemonUsedError(DaemonIdentityError):
    """A no-daemon scenario reused the process of an earlier build."""

    def __init__(self, expected_pid: str | None, actual_pid: str | None) -> None:
        super().__init__(
            f"Gradle daemon was used (pid {actual_pid} was reused).",
            expected_pid,
            actual_pid,
        )


# ---------------------------------------------------------------------------
# Run level
# ---------------------------------------------------------------------------


class ScenarioFailedError(BenchError):
    """One or more scenarios failed.  ``__cause__`` is the first failure."""

    def __init__(self, failure_count: int) -> None:
        noun = "scenario" if failure_count == 1 else "scenarios"
        super().__init__(f"{failure_count} {noun} failed")
        self.failure_count = failure_count
