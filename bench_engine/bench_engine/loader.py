"""Scenario loader -- turn invocation settings into scenario definitions.

Scenarios come from one of two places:

* a YAML **scenario file**, a mapping of scenario name to its options::

      assemble:
        versions: ["8.5", /opt/gradle-8.6]
        tasks: [assemble]
        cleanup-tasks: [clean]
        gradle-args: [--parallel]
        system-properties: {org.gradle.caching: "true"}
        run-using: no-daemon          # or tooling-api
        warm-ups: 3
        iterations: 5
        apply-change-to: src/main/java/Foo.java
        buck:
          targets: ["//app:lib"]
          type: java_library

  Positional targets on the command line select scenarios by name.

* the command line alone, which describes a single ``default`` scenario
  whose tasks are the positional targets.

Everything is validated here, before any build runs; problems surface as
:class:`~bench_engine.errors.ScenarioLoadError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from bench_engine.errors import ScenarioLoadError
from bench_engine.gradle.version import GradleVersion, GradleVersionInspector
from bench_engine.models.scenario import (
    BuckScenarioDefinition,
    GradleScenarioDefinition,
    InvokerKind,
)
from bench_engine.models.settings import InvocationSettings
from bench_engine.mutator import BuildMutatorFactory, NoOpBuildMutator, apply_change_to

logger = logging.getLogger(__name__)

DEFAULT_SCENARIO_NAME = "default"

_KNOWN_KEYS = frozenset(
    {
        "versions",
        "tasks",
        "cleanup-tasks",
        "gradle-args",
        "system-properties",
        "run-using",
        "warm-ups",
        "iterations",
        "apply-change-to",
        "buck",
    }
)
_KNOWN_BUCK_KEYS = frozenset({"targets", "type"})


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def default_warm_up_count(settings: InvocationSettings) -> int:
    if settings.benchmark:
        return 6
    if settings.profile:
        return 2
    return 1


def default_build_count(settings: InvocationSettings) -> int:
    if settings.benchmark:
        return 10
    return 1


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def read_scenario_file(path: Path) -> dict[str, dict[str, Any]]:
    """Parse *path* into a mapping of scenario name to raw options."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ScenarioLoadError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ScenarioLoadError(f"Could not read {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ScenarioLoadError(f"{path} must contain a mapping of scenario names to scenarios")

    scenarios: dict[str, dict[str, Any]] = {}
    for name, body in data.items():
        body = body or {}
        if not isinstance(body, dict):
            raise ScenarioLoadError(f"Scenario '{name}' in {path} must be a mapping")
        unknown = set(body) - _KNOWN_KEYS
        if unknown:
            raise ScenarioLoadError(f"Unrecognized key(s) in scenario '{name}': {', '.join(sorted(unknown))}")
        buck = body.get("buck")
        if buck is not None:
            if not isinstance(buck, dict):
                raise ScenarioLoadError(f"'buck' of scenario '{name}' must be a mapping")
            unknown = set(buck) - _KNOWN_BUCK_KEYS
            if unknown:
                raise ScenarioLoadError(
                    f"Unrecognized key(s) in 'buck' of scenario '{name}': {', '.join(sorted(unknown))}"
                )
        scenarios[str(name)] = body
    return scenarios


def _string_list(value: Any, key: str, scenario: str) -> list[str]:
    """Accept a single string or a list of scalars."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str | int | float) for item in value):
        return [str(item) for item in value]
    raise ScenarioLoadError(f"'{key}' of scenario '{scenario}' must be a string or a list of strings")


def _scalar(value: Any) -> str:
    # YAML booleans become Java-style "true"/"false".
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _string_map(value: Any, key: str, scenario: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ScenarioLoadError(f"'{key}' of scenario '{scenario}' must be a mapping")
    return {str(k): _scalar(v) for k, v in value.items()}


def _count(value: Any, key: str, scenario: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ScenarioLoadError(f"'{key}' of scenario '{scenario}' must be a non-negative integer")
    return value


def _invoker(value: Any, scenario: str, default: InvokerKind) -> InvokerKind:
    if value is None:
        return default
    try:
        return InvokerKind(value)
    except ValueError:
        choices = ", ".join(kind.value for kind in InvokerKind)
        raise ScenarioLoadError(f"'run-using' of scenario '{scenario}' must be one of: {choices}") from None


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class ScenarioLoader:
    """Build the ordered list of scenarios a run executes.

    Parameters
    ----------
    inspector:
        Resolves version arguments to Gradle installations.
    """

    def __init__(self, inspector: GradleVersionInspector) -> None:
        self._inspector = inspector

    def load(self, settings: InvocationSettings) -> list[GradleScenarioDefinition | BuckScenarioDefinition]:
        """Return the scenarios selected by *settings*, fully validated.

        Raises
        ------
        ScenarioLoadError
            If the file is malformed, a selected scenario does not exist,
            a version cannot be resolved, or a scenario is not runnable.
        """
        if settings.scenario_file is not None:
            raw = read_scenario_file(settings.scenario_file)
            selected = self._select(raw, settings.targets, settings.scenario_file)
        else:
            selected = {
                DEFAULT_SCENARIO_NAME: {"tasks": list(settings.targets)},
            }

        if settings.buck:
            buck_scenarios = {name: body for name, body in selected.items() if body.get("buck") is not None}
            if not buck_scenarios:
                raise ScenarioLoadError("--buck was given but no selected scenario has a 'buck' block")
            multiple = len(buck_scenarios) > 1
            scenarios: list[GradleScenarioDefinition | BuckScenarioDefinition] = [
                self._buck_scenario(name, body, settings, multiple) for name, body in buck_scenarios.items()
            ]
        else:
            scenarios = self._gradle_scenarios(selected, settings)

        for scenario in scenarios:
            self._validate(scenario, settings)
        logger.info("Loaded %d scenario(s)", len(scenarios))
        return scenarios

    # -- Selection -----------------------------------------------------------

    @staticmethod
    def _select(
        raw: dict[str, dict[str, Any]],
        names: list[str],
        scenario_file: Path,
    ) -> dict[str, dict[str, Any]]:
        if not names:
            return raw
        missing = [name for name in names if name not in raw]
        if missing:
            available = ", ".join(sorted(raw)) or "(none)"
            raise ScenarioLoadError(
                f"Unknown scenario(s) {', '.join(missing)} in {scenario_file}. Available: {available}"
            )
        return {name: raw[name] for name in dict.fromkeys(names)}

    # -- Gradle --------------------------------------------------------------

    def _gradle_scenarios(
        self,
        selected: dict[str, dict[str, Any]],
        settings: InvocationSettings,
    ) -> list[GradleScenarioDefinition | BuckScenarioDefinition]:
        # Command-line versions override those of the file.
        resolved: dict[str, list[GradleVersion]] = {}
        for name, body in selected.items():
            requested = settings.versions or _string_list(body.get("versions"), "versions", name)
            resolved[name] = self._inspector.resolve(requested)

        multiple = len(selected) > 1 or any(len(versions) > 1 for versions in resolved.values())
        scenarios: list[GradleScenarioDefinition | BuckScenarioDefinition] = []
        for name, body in selected.items():
            for version in resolved[name]:
                output_dir = settings.output_dir / name / version.version if multiple else settings.output_dir
                scenarios.append(self._gradle_scenario(name, body, version, output_dir, settings))
        return scenarios

    def _gradle_scenario(
        self,
        name: str,
        body: dict[str, Any],
        version: GradleVersion,
        output_dir: Path,
        settings: InvocationSettings,
    ) -> GradleScenarioDefinition:
        tasks = _string_list(body.get("tasks"), "tasks", name)
        if not tasks:
            raise ScenarioLoadError(f"No tasks defined for scenario '{name}'")
        system_properties = {
            **_string_map(body.get("system-properties"), "system-properties", name),
            **settings.system_properties,
        }
        try:
            return GradleScenarioDefinition(
                name=name,
                version=version,
                tasks=tasks,
                cleanup_tasks=_string_list(body.get("cleanup-tasks"), "cleanup-tasks", name),
                gradle_args=_string_list(body.get("gradle-args"), "gradle-args", name),
                system_properties=system_properties,
                invoker=_invoker(body.get("run-using"), name, settings.invoker),
                warm_up_count=self._warm_ups(body, name, settings),
                build_count=self._builds(body, name, settings),
                mutator_factory=self._mutator(body, name, settings),
                output_dir=output_dir,
            )
        except ValidationError as exc:
            raise ScenarioLoadError(f"Invalid scenario '{name}': {exc}") from exc

    # -- Buck ----------------------------------------------------------------

    def _buck_scenario(
        self,
        name: str,
        body: dict[str, Any],
        settings: InvocationSettings,
        multiple: bool,
    ) -> BuckScenarioDefinition:
        buck = body["buck"] or {}
        try:
            return BuckScenarioDefinition(
                name=name,
                targets=_string_list(buck.get("targets"), "buck.targets", name),
                type=buck.get("type"),
                warm_up_count=self._warm_ups(body, name, settings),
                build_count=self._builds(body, name, settings),
                mutator_factory=self._mutator(body, name, settings),
                output_dir=settings.output_dir / name if multiple else settings.output_dir,
            )
        except ValidationError as exc:
            raise ScenarioLoadError(f"Invalid scenario '{name}': {exc}") from exc

    # -- Shared --------------------------------------------------------------

    @staticmethod
    def _warm_ups(body: dict[str, Any], name: str, settings: InvocationSettings) -> int:
        if settings.warm_up_count is not None:
            return settings.warm_up_count
        count = _count(body.get("warm-ups"), "warm-ups", name)
        return default_warm_up_count(settings) if count is None else count

    @staticmethod
    def _builds(body: dict[str, Any], name: str, settings: InvocationSettings) -> int:
        if settings.build_count is not None:
            return settings.build_count
        count = _count(body.get("iterations"), "iterations", name)
        return default_build_count(settings) if count is None else count

    @staticmethod
    def _mutator(body: dict[str, Any], name: str, settings: InvocationSettings) -> BuildMutatorFactory:
        target = body.get("apply-change-to")
        if target is None:
            return NoOpBuildMutator
        source_file = settings.project_dir / str(target)
        if not source_file.is_file():
            raise ScenarioLoadError(f"'apply-change-to' of scenario '{name}' refers to missing file {source_file}")
        return apply_change_to(source_file)

    @staticmethod
    def _validate(
        scenario: GradleScenarioDefinition | BuckScenarioDefinition,
        settings: InvocationSettings,
    ) -> None:
        if settings.benchmark and scenario.build_count < 1:
            raise ScenarioLoadError(f"Scenario '{scenario.name}' must run at least one measured build to benchmark")
        if settings.profile and isinstance(scenario, GradleScenarioDefinition) and scenario.warm_up_count < 1:
            raise ScenarioLoadError(
                f"Scenario '{scenario.name}' needs at least one warm-up build to attach the profiler"
            )
