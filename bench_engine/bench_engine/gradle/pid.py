"""Make Gradle builds report the id of the process that ran them.

An init script passed with ``-I`` writes the build process id to a file at
the start of every build; the engine reads it back once the build ends.
Comparing these ids across builds is how the engine proves that a daemon
was, or was not, reused.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from bench_engine.errors import ScenarioError

logger = logging.getLogger(__name__)

_INIT_SCRIPT_TEMPLATE = """\
def pid = java.lang.management.ManagementFactory.runtimeMXBean.name.split('@')[0]
new File('{pid_file}').text = pid
"""


class PidInstrumentation:
    """Generate the pid-reporting init script and read its output.

    Parameters
    ----------
    work_dir:
        Directory holding the init script and pid file.  A temporary
        directory (removed by :meth:`close`) is used when ``None``.
    """

    def __init__(self, work_dir: Path | None = None) -> None:
        self._owns_dir = work_dir is None
        self._dir = Path(tempfile.mkdtemp(prefix="buildbench-pid-")) if work_dir is None else work_dir
        self._dir.mkdir(parents=True, exist_ok=True)
        self._pid_file = self._dir / "build.pid"
        self._init_script = self._dir / "pid-instrumentation.gradle"
        escaped = self._pid_file.resolve().as_posix().replace("\\", "\\\\").replace("'", "\\'")
        self._init_script.write_text(_INIT_SCRIPT_TEMPLATE.format(pid_file=escaped), encoding="utf-8")

    @property
    def pid_file(self) -> Path:
        return self._pid_file

    def get_args(self) -> list[str]:
        """Gradle arguments that install the init script."""
        return ["-I", str(self._init_script)]

    def get_pid_for_last_build(self) -> str:
        """Return and consume the pid written by the most recent build.

        Raises
        ------
        ScenarioError
            If the last build did not report a pid.
        """
        try:
            pid = self._pid_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError as exc:
            raise ScenarioError("The build did not report its process id") from exc
        self._pid_file.unlink()
        if not pid:
            raise ScenarioError("The build reported an empty process id")
        return pid

    def close(self) -> None:
        if self._owns_dir:
            shutil.rmtree(self._dir, ignore_errors=True)

    def __enter__(self) -> PidInstrumentation:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()
