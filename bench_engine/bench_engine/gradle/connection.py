"""Connections from the engine to a Gradle installation and project.

A :class:`ProjectConnection` is opened per scenario.  It answers questions
about the build environment (Gradle version, Java home, base JVM
arguments) and runs daemon builds of the project.  It is closed when the
scenario ends; a closed connection refuses further work.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path

from bench_engine.command import CommandExec, CommandExecError, CommandResult
from bench_engine.gradle.version import GradleVersion, parse_gradle_version, read_properties

logger = logging.getLogger(__name__)

JVM_ARGS_PROPERTY = "org.gradle.jvmargs"
JAVA_HOME_PROPERTY = "org.gradle.java.home"


class BuildEnvironmentError(Exception):
    """Raised when the build environment cannot be determined or used."""


@dataclass(frozen=True)
class BuildEnvironment:
    """What a Gradle build of the project will run on."""

    gradle_version: str
    java_home: Path | None
    jvm_arguments: tuple[str, ...]


def jvm_args_property(jvm_args: list[str]) -> str:
    """``-D`` flag carrying *jvm_args* as the daemon's JVM arguments."""
    return f"-D{JVM_ARGS_PROPERTY}={shlex.join(jvm_args)}"


class ProjectConnection:
    """An open connection to one project through one Gradle installation.

    Parameters
    ----------
    version:
        Installation used for every build.
    project_dir:
        Project root; builds run here.
    gradle_user_home:
        User home whose ``gradle.properties`` overrides the project's.
    default_jvm_args:
        JVM arguments assumed when none are configured.
    control_exec:
        Runs short queries (``gradle --version``); should carry a timeout.
    build_exec:
        Runs builds; carries no timeout.
    """

    def __init__(
        self,
        version: GradleVersion,
        project_dir: Path,
        gradle_user_home: Path,
        default_jvm_args: list[str],
        control_exec: CommandExec,
        build_exec: CommandExec,
    ) -> None:
        self._version = version
        self._project_dir = project_dir
        self._gradle_user_home = gradle_user_home
        self._default_jvm_args = list(default_jvm_args)
        self._control_exec = control_exec.in_dir(project_dir)
        self._build_exec = build_exec.in_dir(project_dir)
        self._environment: BuildEnvironment | None = None
        self._closed = False

    @property
    def version(self) -> GradleVersion:
        return self._version

    def _check_open(self) -> None:
        if self._closed:
            raise BuildEnvironmentError(f"Connection to {self._project_dir} is closed")

    # -- Build environment ---------------------------------------------------

    def get_build_environment(self) -> BuildEnvironment:
        """Resolve (once) the Gradle version, Java home and base JVM arguments.

        Properties from ``<gradle user home>/gradle.properties`` take
        precedence over the project's ``gradle.properties``.  Java home falls
        back to ``JAVA_HOME``; JVM arguments fall back to the defaults.
        """
        self._check_open()
        if self._environment is not None:
            return self._environment

        try:
            output = self._control_exec.run_and_collect_output([str(self._version.executable), "--version"])
            gradle_version = parse_gradle_version(output)
        except (CommandExecError, ValueError) as exc:
            raise BuildEnvironmentError(f"Could not query Gradle {self._version}: {exc}") from exc

        props = {
            **read_properties(self._project_dir / "gradle.properties"),
            **read_properties(self._gradle_user_home / "gradle.properties"),
        }

        java_home_value = props.get(JAVA_HOME_PROPERTY) or os.environ.get("JAVA_HOME")
        java_home = Path(java_home_value) if java_home_value else None

        configured = props.get(JVM_ARGS_PROPERTY)
        jvm_arguments = shlex.split(configured) if configured else list(self._default_jvm_args)

        self._environment = BuildEnvironment(
            gradle_version=gradle_version,
            java_home=java_home,
            jvm_arguments=tuple(jvm_arguments),
        )
        logger.debug("Build environment for %s: %s", self._project_dir, self._environment)
        return self._environment

    # -- Builds --------------------------------------------------------------

    def run_build(self, tasks: list[str], jvm_args: list[str], gradle_args: list[str]) -> CommandResult:
        """Run *tasks* in the (possibly already running) daemon matching *jvm_args*."""
        self._check_open()
        environment = self.get_build_environment()
        command = [str(self._version.executable), "--daemon", jvm_args_property(jvm_args)]
        if environment.java_home is not None:
            command.append(f"-D{JAVA_HOME_PROPERTY}={environment.java_home}")
        command += gradle_args + tasks
        return self._build_exec.run(command)

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        if not self._closed:
            logger.debug("Closing connection to %s", self._project_dir)
        self._closed = True

    def __enter__(self) -> ProjectConnection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


class GradleConnector:
    """Open :class:`ProjectConnection` objects scoped to one Gradle user home.

    Parameters
    ----------
    gradle_user_home:
        User home applied to every connection.
    default_jvm_args:
        JVM arguments assumed when a project configures none.
    control_timeout:
        Timeout, in seconds, for environment queries.
    """

    def __init__(
        self,
        gradle_user_home: Path,
        default_jvm_args: list[str],
        control_timeout: float | None = None,
    ) -> None:
        self._gradle_user_home = gradle_user_home
        self._default_jvm_args = list(default_jvm_args)
        self._control_timeout = control_timeout

    def connect(self, version: GradleVersion, project_dir: Path) -> ProjectConnection:
        logger.debug("Connecting to %s with Gradle %s", project_dir, version)
        return ProjectConnection(
            version=version,
            project_dir=project_dir,
            gradle_user_home=self._gradle_user_home,
            default_jvm_args=self._default_jvm_args,
            control_exec=CommandExec(timeout=self._control_timeout),
            build_exec=CommandExec(),
        )
