"""Build mutators: perturb the project checkout between builds.

A mutator is created once per scenario.  The engine calls
:meth:`BuildMutator.before_build` ahead of every build the scenario runs and
:meth:`BuildMutator.cleanup` exactly once when the scenario ends, whether or
not it succeeded.  The engine never knows what a mutator changes.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class BuildMutator(Protocol):
    """Structural interface for build mutators."""

    def before_build(self) -> None:
        """Apply a change ahead of the next build."""
        ...

    def cleanup(self) -> None:
        """Undo every change made since the scenario started."""
        ...


BuildMutatorFactory = Callable[[], BuildMutator]


class NoOpBuildMutator:
    """Leaves the checkout untouched."""

    def before_build(self) -> None:
        pass

    def cleanup(self) -> None:
        pass

    def __repr__(self) -> str:
        return "NoOpBuildMutator()"


class ApplyChangeToFileMutator:
    """Append a unique marker line to a source file before every build.

    The marker is a line comment, so the file keeps compiling while its
    content (and hash) changes, forcing an incremental rebuild.  The
    original content is restored by :meth:`cleanup`.

    Parameters
    ----------
    source_file:
        File to modify.  Must exist when the first build starts.
    comment_prefix:
        Line-comment token of the file's language.
    """

    def __init__(self, source_file: Path, comment_prefix: str = "//") -> None:
        self._source_file = source_file
        self._comment_prefix = comment_prefix
        self._original: str | None = None

    @property
    def source_file(self) -> Path:
        return self._source_file

    def before_build(self) -> None:
        if self._original is None:
            self._original = self._source_file.read_text(encoding="utf-8")
        marker = f"{self._comment_prefix} buildbench change {uuid.uuid4().hex}"
        text = self._original
        if text and not text.endswith("\n"):
            text += "\n"
        self._source_file.write_text(f"{text}{marker}\n", encoding="utf-8")
        logger.debug("Applied change to %s", self._source_file)

    def cleanup(self) -> None:
        if self._original is None:
            return
        self._source_file.write_text(self._original, encoding="utf-8")
        self._original = None
        logger.debug("Restored %s", self._source_file)

    def __repr__(self) -> str:
        return f"ApplyChangeToFileMutator({str(self._source_file)!r})"


def apply_change_to(source_file: Path) -> BuildMutatorFactory:
    """Factory producing a fresh :class:`ApplyChangeToFileMutator` per scenario."""
    comment_prefix = "#" if source_file.suffix in {".py", ".properties", ".sh"} else "//"

    def factory() -> BuildMutator:
        return ApplyChangeToFileMutator(source_file, comment_prefix)

    factory.__qualname__ = f"apply_change_to({source_file.name})"
    return factory
