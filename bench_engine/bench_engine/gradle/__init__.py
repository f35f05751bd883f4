"""Gradle installations, daemons, connections and pid reporting."""

from __future__ import annotations

from bench_engine.gradle.connection import (
    BuildEnvironment,
    BuildEnvironmentError,
    GradleConnector,
    ProjectConnection,
)
from bench_engine.gradle.daemon import DaemonControl
from bench_engine.gradle.pid import PidInstrumentation
from bench_engine.gradle.version import GradleVersion, GradleVersionInspector

__all__ = [
    "BuildEnvironment",
    "BuildEnvironmentError",
    "DaemonControl",
    "GradleConnector",
    "GradleVersion",
    "GradleVersionInspector",
    "PidInstrumentation",
    "ProjectConnection",
]
