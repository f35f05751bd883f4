"""Stop Gradle daemons between scenarios."""

from __future__ import annotations

import logging
from pathlib import Path

from bench_engine.command import CommandExec
from bench_engine.gradle.version import GradleVersion
from bench_engine.reporting import RunReporter

logger = logging.getLogger(__name__)


class DaemonControl:
    """Stop every daemon of a Gradle version that uses the run's user home.

    Stopping is idempotent: ``gradle --stop`` succeeds when no daemon is
    running.

    Parameters
    ----------
    gradle_user_home:
        Only daemons registered under this user home are stopped.
    reporter:
        Receives the ``Stopping daemons`` banner.
    command_exec:
        Runs ``gradle --stop``; should carry a timeout.
    """

    def __init__(
        self,
        gradle_user_home: Path,
        reporter: RunReporter,
        command_exec: CommandExec | None = None,
    ) -> None:
        self._gradle_user_home = gradle_user_home
        self._reporter = reporter
        self._command_exec = command_exec or CommandExec()

    def stop(self, version: GradleVersion) -> None:
        self._reporter.start_operation("Stopping daemons")
        self._command_exec.run(
            [
                str(version.executable),
                "--gradle-user-home",
                str(self._gradle_user_home),
                "--stop",
            ]
        )
        logger.debug("Stopped Gradle %s daemons under %s", version, self._gradle_user_home)
