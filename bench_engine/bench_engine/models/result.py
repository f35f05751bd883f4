"""Per-build measurement records."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

# Display labels.  Only builds labelled ``build N`` count as measurements.
INITIAL_CLEAN_BUILD = "initial clean build"
WARM_UP_BUILD_PREFIX = "warm-up build "
MEASURED_BUILD_PREFIX = "build "


def warm_up_label(index: int) -> str:
    return f"{WARM_UP_BUILD_PREFIX}{index}"


def measured_label(index: int) -> str:
    return f"{MEASURED_BUILD_PREFIX}{index}"


@dataclass(frozen=True)
class BuildInvocationResult:
    """Immutable record of one build invocation.

    ``daemon_pid`` identifies the process that executed the build.  It is
    ``None`` for tools that do not report one (Buck).
    """

    display_name: str
    execution_time: timedelta
    daemon_pid: str | None = None

    @property
    def execution_time_ms(self) -> int:
        return int(self.execution_time.total_seconds() * 1000)

    @property
    def is_measured(self) -> bool:
        return self.display_name.startswith(MEASURED_BUILD_PREFIX)


ResultConsumer = Callable[[BuildInvocationResult], None]
