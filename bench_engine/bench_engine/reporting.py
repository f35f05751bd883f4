"""Run transcript and detail log.

A run produces two streams of output:

* the **transcript** -- what a person watching the run sees: operation
  banners (``* Running warm-up build 1``), execution times, summaries.
  Written to a :class:`rich.console.Console`.
* the **detail log** -- ``profile.log`` in the output directory.  Receives
  every transcript line plus details too noisy for the terminal (JVM
  arguments, command output, tracebacks).

:class:`RunReporter` is the single object components use to write to both.
It is created once per run and passed explicitly to every component that
reports progress.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from bench_engine.config import BenchSettings

logger = logging.getLogger(__name__)

DETAIL_LOGGER_NAME = "bench_engine.detail"

_TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"

# Marks handlers installed by setup_logging so a second call replaces them.
_HANDLER_MARKER = "_bench_engine_handler"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        scenario = getattr(record, "scenario", None)
        if scenario is not None:
            payload["scenario"] = scenario

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def setup_logging(output_dir: Path, settings: BenchSettings) -> Path:
    """Route logging to ``<output_dir>/<log_file_name>`` and warnings to stderr.

    Safe to call more than once; handlers from an earlier call are replaced.
    Returns the path of the detail log.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    log_file = output_dir / settings.log_file_name

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setLevel(settings.log_level)
    if settings.structured_logging:
        file_handler.setFormatter(JSONFormatter())
    else:
        file_handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    console_handler = RichHandler(
        console=Console(stderr=True),
        level=logging.WARNING,
        show_path=False,
        rich_tracebacks=True,
    )

    for handler in (file_handler, console_handler):
        setattr(handler, _HANDLER_MARKER, True)
        root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    logger.debug("Detail log at %s", log_file)
    return log_file


class RunReporter:
    """Write progress to the run transcript and the detail log.

    Parameters
    ----------
    console:
        Transcript destination.  Defaults to a console on stdout.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self._detail = logging.getLogger(DETAIL_LOGGER_NAME)

    def line(self, message: str = "") -> None:
        """A transcript line, also copied to the detail log."""
        self.console.print(message, markup=False, highlight=False)
        self._detail.info(message)

    def detail(self, message: str = "") -> None:
        """A detail-log-only line."""
        self._detail.info(message)

    def start_operation(self, name: str) -> None:
        """Print a ``* name`` banner marking the start of an operation."""
        self.console.print()
        self.console.print(f"* {name}", style="bold", markup=False, highlight=False)
        self._detail.info("")
        self._detail.info("* %s", name)
