"""Profiler back-ends and the capabilities the engine consumes."""

from __future__ import annotations

from bench_engine.command import CommandExec
from bench_engine.config import BenchSettings
from bench_engine.profiler.base import (
    NO_OP_CONTROLLER,
    JvmArgsCalculator,
    NoProfiler,
    Profiler,
    ProfilerController,
    identity_jvm_args,
)
from bench_engine.profiler.jfr import JfrProfiler

PROFILER_NAMES: tuple[str, ...] = ("jfr",)


def get_profiler(name: str | None, settings: BenchSettings | None = None) -> Profiler:
    """Return the profiler called *name*, or :class:`NoProfiler` for ``None``.

    Raises
    ------
    ValueError
        If *name* is not a known profiler.
    """
    if name is None or name == "none":
        return NoProfiler()
    settings = settings or BenchSettings()
    if name == "jfr":
        return JfrProfiler(
            jcmd=settings.jcmd_executable,
            command_exec=CommandExec(timeout=settings.control_command_timeout_seconds),
        )
    raise ValueError(f"Unknown profiler '{name}'. Choose one of: {', '.join(PROFILER_NAMES)}")


__all__ = [
    "NO_OP_CONTROLLER",
    "PROFILER_NAMES",
    "JfrProfiler",
    "JvmArgsCalculator",
    "NoProfiler",
    "Profiler",
    "ProfilerController",
    "get_profiler",
    "identity_jvm_args",
]
