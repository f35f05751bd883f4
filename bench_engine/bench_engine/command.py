"""Run external commands and measure how long they take.

Every process the engine launches -- Gradle builds, ``gradle --stop``, Buck,
``jcmd`` -- goes through :class:`CommandExec` so that callers receive
:class:`CommandExecError` with a descriptive message rather than raw
subprocess failures.

Output of a command (stdout and stderr, kept apart) is captured and
forwarded line by line to the detail log.  A timeout may be given for short
control commands; build invocations are run without one and block until the
process exits.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

logger = logging.getLogger(__name__)


class CommandExecError(Exception):
    """Raised when a command cannot be started, times out, or exits non-zero."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a completed command."""

    exit_code: int
    duration: timedelta
    output: str = ""
    error_output: str = ""


class CommandExec:
    """Launch commands in a fixed working directory and environment.

    Parameters
    ----------
    working_dir:
        Directory the process starts in.  ``None`` inherits the current one.
    env:
        Extra environment variables layered over ``os.environ``.
    timeout:
        Seconds to wait before the process is killed.  ``None`` waits forever.
    """

    def __init__(
        self,
        working_dir: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self._working_dir = working_dir
        self._env = dict(env or {})
        self._timeout = timeout

    def in_dir(self, working_dir: Path) -> CommandExec:
        """Return a copy that starts processes in *working_dir*."""
        return CommandExec(working_dir, self._env, self._timeout)

    def with_env(self, **env: str) -> CommandExec:
        """Return a copy with *env* added to the process environment."""
        return CommandExec(self._working_dir, {**self._env, **env}, self._timeout)

    def run(self, command_line: Sequence[str]) -> CommandResult:
        """Run *command_line* to completion and return its exit code and duration.

        Raises
        ------
        CommandExecError
            On non-zero exit, timeout, or if the executable cannot be started.
        """
        cmd = [str(part) for part in command_line]
        printable = " ".join(cmd)
        logger.debug("Running %s (cwd=%s)", printable, self._working_dir or Path.cwd())

        env = {**os.environ, **self._env} if self._env else None
        started = time.perf_counter()
        try:
            proc = subprocess.run(
                cmd,
                cwd=self._working_dir,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandExecError(f"Command timed out after {self._timeout}s: {printable}") from exc
        except FileNotFoundError as exc:
            raise CommandExecError(f"Executable not found: {cmd[0]}") from exc
        except PermissionError as exc:
            raise CommandExecError(f"Executable is not runnable: {cmd[0]}") from exc
        duration = timedelta(seconds=time.perf_counter() - started)

        output = proc.stdout or ""
        error_output = proc.stderr or ""
        for line in output.splitlines() + error_output.splitlines():
            logger.debug("  %s", line)

        if proc.returncode != 0:
            tail = "\n".join((error_output or output).strip().splitlines()[-20:])
            raise CommandExecError(
                f"Command failed: {printable}\nExit code {proc.returncode}: {tail}",
                exit_code=proc.returncode,
                output=output,
            )
        return CommandResult(
            exit_code=proc.returncode,
            duration=duration,
            output=output,
            error_output=error_output,
        )

    def run_and_collect_output(self, command_line: Sequence[str]) -> str:
        """Run *command_line* and return what it printed to stdout."""
        return self.run(command_line).output
