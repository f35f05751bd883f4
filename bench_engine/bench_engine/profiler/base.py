"""Profiler capabilities consumed by the engine.

A profiler contributes two things to a Gradle scenario:

* a **JVM-argument calculator**, applied once when the scenario's JVM
  arguments are computed (e.g. to enable a recording agent), and
* a **controller** per scenario, whose ``start``/``stop`` tightly bracket
  each measured build.

Both are plain capability records.  :class:`NoProfiler` supplies the
identity calculator and a controller whose hooks do nothing; the engine
uses them whenever profiling is off.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bench_engine.invoker.base import BuildInvoker
    from bench_engine.models.settings import ScenarioSettings

JvmArgsCalculator = Callable[[list[str]], list[str]]


def identity_jvm_args(jvm_args: list[str]) -> list[str]:
    """JVM-argument calculator that changes nothing."""
    return list(jvm_args)


def _do_nothing() -> None:
    return None


@dataclass(frozen=True)
class ProfilerController:
    """Start/stop hooks bracketing one measured build."""

    start: Callable[[], None]
    stop: Callable[[], None]


NO_OP_CONTROLLER = ProfilerController(start=_do_nothing, stop=_do_nothing)


@runtime_checkable
class Profiler(Protocol):
    """Structural interface for profiler back-ends."""

    @property
    def name(self) -> str: ...

    def new_jvm_args_calculator(self, scenario_settings: ScenarioSettings) -> JvmArgsCalculator:
        """Return the calculator applied to the scenario's JVM arguments."""
        ...

    def new_controller(
        self,
        pid: str | None,
        scenario_settings: ScenarioSettings,
        invoker: BuildInvoker,
    ) -> ProfilerController:
        """Return the controller for the build process *pid*."""
        ...


class NoProfiler:
    """The profiler used when profiling is off."""

    @property
    def name(self) -> str:
        return "none"

    def new_jvm_args_calculator(self, scenario_settings: ScenarioSettings) -> JvmArgsCalculator:
        return identity_jvm_args

    def new_controller(
        self,
        pid: str | None,
        scenario_settings: ScenarioSettings,
        invoker: BuildInvoker,
    ) -> ProfilerController:
        return NO_OP_CONTROLLER

    def __repr__(self) -> str:
        return "NoProfiler()"
