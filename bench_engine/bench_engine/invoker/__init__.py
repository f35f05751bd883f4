"""Strategies for launching a single build."""

from __future__ import annotations

from bench_engine.invoker.base import BuildInvoker, report_build
from bench_engine.invoker.no_daemon import NoDaemonInvoker
from bench_engine.invoker.tooling_api import ToolingApiInvoker

__all__ = [
    "BuildInvoker",
    "NoDaemonInvoker",
    "ToolingApiInvoker",
    "report_build",
]
