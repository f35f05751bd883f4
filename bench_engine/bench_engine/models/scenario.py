"""Scenario definitions.

A scenario is one of two kinds, discriminated by ``kind``:

* :class:`GradleScenarioDefinition` -- builds driven through Gradle, with a
  daemon lifecycle, optional profiling, and a daemon-identity invariant.
* :class:`BuckScenarioDefinition` -- builds driven through the project's
  ``buckw`` wrapper; plain timed commands.

Both carry warm-up and measured build counts and a mutator factory.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bench_engine.gradle.version import GradleVersion
from bench_engine.mutator import BuildMutatorFactory, NoOpBuildMutator


class ScenarioKind(str, Enum):
    """Build tool backing a scenario."""

    GRADLE = "gradle"
    BUCK = "buck"


class InvokerKind(str, Enum):
    """How Gradle builds of a scenario are launched."""

    NO_DAEMON = "no-daemon"
    TOOLING_API = "tooling-api"


class _ScenarioBase(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Scenario name from the scenario file.")
    warm_up_count: int = Field(..., ge=0, description="Builds run before measuring.")
    build_count: int = Field(..., ge=0, description="Measured builds.")
    mutator_factory: BuildMutatorFactory = Field(
        default=NoOpBuildMutator,
        description="Creates the scenario's build mutator.",
    )
    output_dir: Path = Field(..., description="Directory receiving this scenario's artefacts.")


class GradleScenarioDefinition(_ScenarioBase):
    """A scenario that runs Gradle tasks against one Gradle version."""

    kind: Literal[ScenarioKind.GRADLE] = ScenarioKind.GRADLE
    version: GradleVersion
    tasks: list[str] = Field(..., min_length=1)
    cleanup_tasks: list[str] = Field(default_factory=list)
    invoker: InvokerKind = InvokerKind.TOOLING_API
    system_properties: dict[str, str] = Field(default_factory=dict)
    gradle_args: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"{self.name} using Gradle {self.version}"

    @property
    def tasks_display(self) -> str:
        return " ".join(self.tasks)

    def describe(self) -> list[tuple[str, str]]:
        rows = [
            ("Gradle version", f"{self.version} ({self.version.gradle_home})"),
            ("Run using", self.invoker.value),
            ("Tasks", self.tasks_display),
            ("Cleanup tasks", " ".join(self.cleanup_tasks) or "-"),
            ("Gradle args", " ".join(self.gradle_args) or "-"),
        ]
        rows += [(f"-D{key}", value) for key, value in self.system_properties.items()]
        rows += [
            ("Build changes", getattr(self.mutator_factory, "__qualname__", repr(self.mutator_factory))),
            ("Warm-ups", str(self.warm_up_count)),
            ("Builds", str(self.build_count)),
        ]
        return rows


class BuckScenarioDefinition(_ScenarioBase):
    """A scenario that builds Buck targets, explicit and/or selected by type."""

    kind: Literal[ScenarioKind.BUCK] = ScenarioKind.BUCK
    targets: list[str] = Field(default_factory=list)
    type: str | None = Field(default=None, description="Also build every target of this rule type.")

    @model_validator(mode="after")
    def require_targets(self) -> BuckScenarioDefinition:
        if not self.targets and not self.type:
            raise ValueError(f"Buck scenario '{self.name}' has neither targets nor a target type.")
        return self

    @property
    def display_name(self) -> str:
        return f"{self.name} using buck"

    @property
    def tasks_display(self) -> str:
        parts = list(self.targets)
        if self.type:
            parts.append(f"type={self.type}")
        return " ".join(parts)

    def describe(self) -> list[tuple[str, str]]:
        return [
            ("Targets", " ".join(self.targets) or "-"),
            ("Target type", self.type or "-"),
            ("Build changes", getattr(self.mutator_factory, "__qualname__", repr(self.mutator_factory))),
            ("Warm-ups", str(self.warm_up_count)),
            ("Builds", str(self.build_count)),
        ]


ScenarioDefinition = Annotated[
    GradleScenarioDefinition | BuckScenarioDefinition,
    Field(discriminator="kind"),
]
