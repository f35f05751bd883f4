"""Benchmark engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# Gradle's own daemon defaults, used when no org.gradle.jvmargs is configured.
DEFAULT_GRADLE_JVM_ARGS: tuple[str, ...] = ("-Xmx512m", "-XX:MaxMetaspaceSize=384m")


class BenchSettings(BaseSettings):
    """Process-wide settings loaded from environment variables with BUILDBENCH_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="BUILDBENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False
    log_level: str = "INFO"

    # Detail log
    log_file_name: str = "profile.log"
    structured_logging: bool = False

    # Results
    results_file_name: str = "benchmark.csv"

    # Control commands (gradle --stop, gradle --version, jcmd).  Builds are
    # never subject to this timeout.
    control_command_timeout_seconds: float = 120.0

    # Toolchain
    gradle_home: Path | None = None
    default_jvm_args: Annotated[list[str], NoDecode] = list(DEFAULT_GRADLE_JVM_ARGS)
    jcmd_executable: str = "jcmd"

    @field_validator("default_jvm_args", mode="before")
    @classmethod
    def split_jvm_args(cls, v: object) -> object:
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level


def load_settings(**overrides: object) -> BenchSettings:
    """Load settings from environment, with optional overrides for testing."""
    settings = BenchSettings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded bench settings (log level %s)", settings.log_level)

    return settings
