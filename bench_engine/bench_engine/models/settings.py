"""Immutable run configuration.

:class:`InvocationSettings` is resolved once from the command line and is
read-only for the rest of the run.  :class:`ScenarioSettings` narrows it to
one scenario for collaborators (profilers) that write per-scenario output.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bench_engine.models.scenario import (
    BuckScenarioDefinition,
    GradleScenarioDefinition,
    InvokerKind,
)
from bench_engine.profiler.base import NoProfiler, Profiler


class InvocationSettings(BaseModel):
    """Settings shared by every scenario of a run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    project_dir: Path = Field(..., description="Root of the project being built.")
    output_dir: Path = Field(..., description="Receives results, logs and profiler output.")
    gradle_user_home: Path = Field(..., description="Gradle user home used for every build.")

    benchmark: bool = False
    profile: bool = False
    dry_run: bool = False
    profiler: Profiler = Field(default_factory=NoProfiler)

    scenario_file: Path | None = None
    targets: list[str] = Field(
        default_factory=list,
        description="Tasks to run, or scenario names when a scenario file is given.",
    )
    versions: list[str] = Field(default_factory=list)
    invoker: InvokerKind = InvokerKind.TOOLING_API
    system_properties: dict[str, str] = Field(default_factory=dict)
    warm_up_count: int | None = Field(default=None, ge=0)
    build_count: int | None = Field(default=None, ge=0)
    buck: bool = False

    @field_validator("project_dir")
    @classmethod
    def project_dir_exists(cls, v: Path) -> Path:
        v = v.expanduser().resolve()
        if not v.is_dir():
            raise ValueError(f"Project directory {v} does not exist")
        return v

    @field_validator("output_dir", "gradle_user_home")
    @classmethod
    def absolute(cls, v: Path) -> Path:
        return v.expanduser().resolve()

    @field_validator("scenario_file")
    @classmethod
    def scenario_file_exists(cls, v: Path | None) -> Path | None:
        if v is None:
            return None
        v = v.expanduser().resolve()
        if not v.is_file():
            raise ValueError(f"Scenario file {v} does not exist")
        return v

    @model_validator(mode="after")
    def profile_requires_profiler(self) -> InvocationSettings:
        if self.profile and isinstance(self.profiler, NoProfiler):
            raise ValueError("Profiling was requested but no profiler was selected")
        return self

    def describe(self) -> list[tuple[str, str]]:
        """``(label, value)`` rows for the settings banner."""
        return [
            ("Project dir", str(self.project_dir)),
            ("Output dir", str(self.output_dir)),
            ("Gradle user home", str(self.gradle_user_home)),
            ("Profiler", self.profiler.name if self.profile else "none"),
            ("Benchmark", str(self.benchmark).lower()),
            ("Dry run", str(self.dry_run).lower()),
            ("Scenario file", str(self.scenario_file) if self.scenario_file else "-"),
            ("Versions", ", ".join(self.versions) or "(project default)"),
            ("Targets", " ".join(self.targets) or "-"),
            ("Run using", "buck" if self.buck else self.invoker.value),
            ("Warm-ups", "(default)" if self.warm_up_count is None else str(self.warm_up_count)),
            ("Builds", "(default)" if self.build_count is None else str(self.build_count)),
        ]


@dataclass(frozen=True)
class ScenarioSettings:
    """One scenario seen together with the run's settings."""

    invocation_settings: InvocationSettings
    scenario: GradleScenarioDefinition | BuckScenarioDefinition

    @property
    def scenario_output_dir(self) -> Path:
        return self.scenario.output_dir
