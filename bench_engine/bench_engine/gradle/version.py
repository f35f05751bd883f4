"""Gradle installations and version resolution.

A :class:`GradleVersion` pairs a version string with the installation that
provides it.  :class:`GradleVersionInspector` turns what the user typed
(a version number, an installation directory, or nothing at all) into
concrete installations before any scenario runs.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from bench_engine.command import CommandExec, CommandExecError
from bench_engine.errors import ScenarioLoadError

logger = logging.getLogger(__name__)

_VERSION_LINE_RE = re.compile(r"^Gradle\s+(\S+)\s*$", re.MULTILINE)
_DISTRIBUTION_URL_RE = re.compile(r"gradle-([^/]+?)-(?:bin|all)\.zip")
_PROPERTY_RE = re.compile(r"^([^=:\s]+)\s*[=:]\s*(.*)$")


class GradleVersion(BaseModel):
    """A Gradle version backed by a local installation."""

    model_config = ConfigDict(frozen=True)

    version: str
    gradle_home: Path

    @property
    def executable(self) -> Path:
        """Launcher script of this installation."""
        name = "gradle.bat" if os.name == "nt" else "gradle"
        return self.gradle_home / "bin" / name

    def __str__(self) -> str:
        return self.version


def parse_gradle_version(output: str) -> str:
    """Extract the version from ``gradle --version`` output."""
    match = _VERSION_LINE_RE.search(output)
    if match is None:
        raise ValueError("Could not find a 'Gradle <version>' line in gradle --version output")
    return match.group(1)


def read_properties(path: Path) -> dict[str, str]:
    """Parse a Java ``.properties`` file (``key=value`` or ``key:value`` lines).

    Missing files yield an empty mapping.  Comments and blank lines are
    skipped; line continuations are not supported.
    """
    if not path.is_file():
        return {}
    props: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        match = _PROPERTY_RE.match(line)
        if match is None:
            continue
        key, value = match.groups()
        props[key] = value.replace("\\:", ":").replace("\\=", "=")
    return props


class GradleVersionInspector:
    """Resolve requested Gradle versions into local installations.

    Parameters
    ----------
    project_dir:
        The project being benchmarked; its wrapper properties supply the
        default version.
    gradle_user_home:
        Gradle user home whose ``wrapper/dists`` cache is searched for
        version numbers.
    fallback_home:
        Installation to use when nothing else applies.
    command_exec:
        Used to run ``gradle --version``.
    """

    def __init__(
        self,
        project_dir: Path,
        gradle_user_home: Path,
        fallback_home: Path | None = None,
        command_exec: CommandExec | None = None,
    ) -> None:
        self._project_dir = project_dir
        self._gradle_user_home = gradle_user_home
        self._fallback_home = fallback_home
        self._command_exec = command_exec or CommandExec()

    def resolve(self, requested: list[str]) -> list[GradleVersion]:
        """Resolve each entry of *requested*, or the project default if empty."""
        if not requested:
            return [self.default_version()]
        return [self.resolve_one(item) for item in requested]

    def resolve_one(self, requested: str) -> GradleVersion:
        candidate = Path(requested).expanduser()
        if candidate.is_dir():
            return self.inspect_installation(candidate)
        installation = self._find_in_wrapper_cache(requested)
        if installation is None:
            raise ScenarioLoadError(
                f"Gradle {requested} is not installed under {self._gradle_user_home / 'wrapper' / 'dists'}. "
                "Pass an installation directory instead."
            )
        return GradleVersion(version=requested, gradle_home=installation)

    def default_version(self) -> GradleVersion:
        """The version the project's wrapper asks for, else the fallback installation."""
        wrapper = read_properties(self._project_dir / "gradle" / "wrapper" / "gradle-wrapper.properties")
        url = wrapper.get("distributionUrl", "")
        match = _DISTRIBUTION_URL_RE.search(url)
        if match is not None:
            installation = self._find_in_wrapper_cache(match.group(1))
            if installation is not None:
                return GradleVersion(version=match.group(1), gradle_home=installation)
            logger.info("Wrapper version %s is not in the distribution cache", match.group(1))
        if self._fallback_home is not None:
            return self.inspect_installation(self._fallback_home)
        raise ScenarioLoadError(
            f"Could not determine a Gradle version for {self._project_dir}: "
            "no cached wrapper distribution and no --gradle-version given."
        )

    def inspect_installation(self, gradle_home: Path) -> GradleVersion:
        """Run ``bin/gradle --version`` of *gradle_home* and read its version."""
        gradle_home = gradle_home.resolve()
        probe = GradleVersion(version="unknown", gradle_home=gradle_home)
        try:
            output = self._command_exec.run_and_collect_output([str(probe.executable), "--version"])
            version = parse_gradle_version(output)
        except (CommandExecError, ValueError) as exc:
            raise ScenarioLoadError(f"{gradle_home} is not a usable Gradle installation: {exc}") from exc
        logger.debug("Installation %s provides Gradle %s", gradle_home, version)
        return GradleVersion(version=version, gradle_home=gradle_home)

    def _find_in_wrapper_cache(self, version: str) -> Path | None:
        dists = self._gradle_user_home / "wrapper" / "dists"
        for flavour in ("bin", "all"):
            dist_dir = dists / f"gradle-{version}-{flavour}"
            if not dist_dir.is_dir():
                continue
            for hashed in sorted(dist_dir.iterdir()):
                installation = hashed / f"gradle-{version}"
                if (installation / "bin").is_dir():
                    return installation
        return None
