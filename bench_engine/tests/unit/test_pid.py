"""Unit tests for bench_engine.gradle.pid."""

from __future__ import annotations

import pytest

from bench_engine.errors import ScenarioError
from bench_engine.gradle.pid import PidInstrumentation


class TestPidInstrumentation:
    def test_init_script_argument(self, tmp_path):
        instrumentation = PidInstrumentation(tmp_path)
        flag, script = instrumentation.get_args()
        assert flag == "-I"
        text = (tmp_path / "pid-instrumentation.gradle").read_text(encoding="utf-8")
        assert script == str(tmp_path / "pid-instrumentation.gradle")
        assert instrumentation.pid_file.resolve().as_posix() in text

    def test_reads_and_consumes_pid(self, tmp_path):
        instrumentation = PidInstrumentation(tmp_path)
        instrumentation.pid_file.write_text("4242\n", encoding="utf-8")

        assert instrumentation.get_pid_for_last_build() == "4242"
        assert not instrumentation.pid_file.exists()

    def test_missing_pid(self, tmp_path):
        with pytest.raises(ScenarioError, match="did not report"):
            PidInstrumentation(tmp_path).get_pid_for_last_build()

    def test_empty_pid(self, tmp_path):
        instrumentation = PidInstrumentation(tmp_path)
        instrumentation.pid_file.write_text("  ", encoding="utf-8")
        with pytest.raises(ScenarioError, match="empty"):
            instrumentation.get_pid_for_last_build()

    def test_temporary_directory_removed(self):
        with PidInstrumentation() as instrumentation:
            work_dir = instrumentation.pid_file.parent
            assert work_dir.is_dir()
        assert not work_dir.exists()

    def test_given_directory_kept(self, tmp_path):
        PidInstrumentation(tmp_path).close()
        assert tmp_path.is_dir()
