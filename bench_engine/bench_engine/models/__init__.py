"""Domain models for the benchmark engine."""

from bench_engine.models.result import (
    INITIAL_CLEAN_BUILD,
    BuildInvocationResult,
    ResultConsumer,
    measured_label,
    warm_up_label,
)
from bench_engine.models.scenario import (
    BuckScenarioDefinition,
    GradleScenarioDefinition,
    InvokerKind,
    ScenarioDefinition,
    ScenarioKind,
)
from bench_engine.models.settings import InvocationSettings, ScenarioSettings

__all__ = [
    "INITIAL_CLEAN_BUILD",
    "BuckScenarioDefinition",
    "BuildInvocationResult",
    "GradleScenarioDefinition",
    "InvocationSettings",
    "InvokerKind",
    "ResultConsumer",
    "ScenarioDefinition",
    "ScenarioKind",
    "ScenarioSettings",
    "measured_label",
    "warm_up_label",
]
