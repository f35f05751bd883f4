"""Unit tests for bench_engine.invoker."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

from bench_engine.command import CommandResult
from bench_engine.gradle.version import GradleVersion
from bench_engine.invoker import NoDaemonInvoker, ToolingApiInvoker, report_build


def _result(ms: int) -> CommandResult:
    return CommandResult(exit_code=0, duration=timedelta(milliseconds=ms))


def _pid_instrumentation(pid: str = "99") -> MagicMock:
    instrumentation = MagicMock()
    instrumentation.get_pid_for_last_build.return_value = pid
    return instrumentation


# ---------------------------------------------------------------------------
# report_build
# ---------------------------------------------------------------------------


class TestReportBuild:
    def test_records_and_prints(self):
        reporter = MagicMock()
        consumer = MagicMock()

        result = report_build(reporter, consumer, "build 1", timedelta(milliseconds=1500), "12", record=True)

        assert result.display_name == "build 1"
        assert result.execution_time_ms == 1500
        assert result.daemon_pid == "12"
        consumer.assert_called_once_with(result)
        reporter.line.assert_any_call("Used process with pid 12")
        reporter.line.assert_any_call("Execution time 1500ms")

    def test_unrecorded(self):
        consumer = MagicMock()
        report_build(MagicMock(), consumer, "cleanup", timedelta(seconds=1), "12", record=False)
        consumer.assert_not_called()

    def test_no_pid_line_without_pid(self):
        reporter = MagicMock()
        report_build(reporter, MagicMock(), "build 1", timedelta(seconds=1), None, record=True)
        printed = [c.args[0] for c in reporter.line.call_args_list]
        assert printed == ["Execution time 1000ms"]


# ---------------------------------------------------------------------------
# ToolingApiInvoker
# ---------------------------------------------------------------------------


class TestToolingApiInvoker:
    def test_runs_through_connection(self):
        connection = MagicMock()
        connection.run_build.return_value = _result(300)
        consumer = MagicMock()
        reporter = MagicMock()
        invoker = ToolingApiInvoker(connection, ["-Xmx1g"], ["--offline"], _pid_instrumentation("7"), consumer, reporter)

        result = invoker.run_build("warm-up build 1", ["assemble"])

        connection.run_build.assert_called_once_with(["assemble"], ["-Xmx1g"], ["--offline"])
        reporter.start_operation.assert_called_once_with("Running warm-up build 1")
        assert result.daemon_pid == "7"
        assert result.execution_time_ms == 300
        consumer.assert_called_once_with(result)


# ---------------------------------------------------------------------------
# NoDaemonInvoker
# ---------------------------------------------------------------------------


class TestNoDaemonInvoker:
    def _invoker(self, tmp_path: Path, command_exec: MagicMock, java_home: Path | None = None) -> NoDaemonInvoker:
        return NoDaemonInvoker(
            GradleVersion(version="8.5", gradle_home=Path("/opt/gradle")),
            java_home,
            tmp_path,
            ["-Xmx1g", "-Dx=a b"],
            ["-I", "pid.gradle"],
            _pid_instrumentation("55"),
            MagicMock(),
            MagicMock(),
            command_exec=command_exec,
        )

    def test_environment(self, tmp_path):
        command_exec = MagicMock()
        self._invoker(tmp_path, command_exec, java_home=Path("/opt/jdk"))

        command_exec.in_dir.assert_called_once_with(tmp_path)
        command_exec.in_dir.return_value.with_env.assert_called_once_with(
            GRADLE_OPTS="-Xmx1g '-Dx=a b'",
            JAVA_HOME=str(Path("/opt/jdk")),
        )

    def test_command_line(self, tmp_path):
        invoker = self._invoker(tmp_path, MagicMock())
        assert invoker.command_line(["help"])[1:] == [
            "--no-daemon",
            "-Dorg.gradle.jvmargs=-Xmx1g '-Dx=a b'",
            "-I",
            "pid.gradle",
            "help",
        ]

    def test_run_build(self, tmp_path):
        command_exec = MagicMock()
        build_exec = command_exec.in_dir.return_value.with_env.return_value
        build_exec.run.return_value = _result(800)
        invoker = self._invoker(tmp_path, command_exec)

        result = invoker.run_build("build 1", ["help"])

        assert build_exec.run.call_args.args[0] == invoker.command_line(["help"])
        assert result.daemon_pid == "55"
        assert result.execution_time_ms == 800
