"""Java Flight Recorder profiling through ``jcmd``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from bench_engine.command import CommandExec
from bench_engine.errors import ScenarioError
from bench_engine.profiler.base import JvmArgsCalculator, ProfilerController

if TYPE_CHECKING:
    from bench_engine.invoker.base import BuildInvoker
    from bench_engine.models.settings import ScenarioSettings

logger = logging.getLogger(__name__)

RECORDING_NAME = "buildbench"

# Without these, JFR samples are biased towards safepoints.
JFR_JVM_ARGS: tuple[str, ...] = ("-XX:+UnlockDiagnosticVMOptions", "-XX:+DebugNonSafepoints")


def recording_path(output_dir: Path, pid: str) -> Path:
    """First free recording file for *pid*: ``<pid>.jfr``, then ``<pid>-2.jfr`` and so on."""
    path = output_dir / f"{pid}.jfr"
    number = 1
    while path.exists():
        number += 1
        path = output_dir / f"{pid}-{number}.jfr"
    return path


class JfrProfiler:
    """Record each measured build of the daemon with JFR.

    Parameters
    ----------
    jcmd:
        ``jcmd`` executable used to start and stop recordings.
    command_exec:
        Runs ``jcmd``; should carry a timeout.
    """

    def __init__(self, jcmd: str = "jcmd", command_exec: CommandExec | None = None) -> None:
        self._jcmd = jcmd
        self._command_exec = command_exec or CommandExec()

    @property
    def name(self) -> str:
        return "jfr"

    def new_jvm_args_calculator(self, scenario_settings: ScenarioSettings) -> JvmArgsCalculator:
        def add_jfr_args(jvm_args: list[str]) -> list[str]:
            return list(jvm_args) + [arg for arg in JFR_JVM_ARGS if arg not in jvm_args]

        return add_jfr_args

    def new_controller(
        self,
        pid: str | None,
        scenario_settings: ScenarioSettings,
        invoker: BuildInvoker,
    ) -> ProfilerController:
        if pid is None:
            raise ScenarioError("JFR profiling needs the process id of the build")
        recording = recording_path(scenario_settings.scenario_output_dir, pid)

        def start() -> None:
            logger.info("Starting JFR recording in process %s", pid)
            self._command_exec.run([self._jcmd, pid, "JFR.start", f"name={RECORDING_NAME}", "settings=profile"])

        def stop() -> None:
            self._command_exec.run(
                [self._jcmd, pid, "JFR.stop", f"name={RECORDING_NAME}", f"filename={recording}"]
            )
            logger.info("JFR recording written to %s", recording)

        return ProfilerController(start=start, stop=stop)

    def __repr__(self) -> str:
        return f"JfrProfiler(jcmd={self._jcmd!r})"
