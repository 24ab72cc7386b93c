#!/usr/bin/env python3
"""
Runtime settings read from the environment.

Scripts call load_dotenv() first, so values may also come from a .env file.

Usage:
    from stepflow.core.config import Settings

    settings = Settings.from_env()
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class Settings:
    """Logging settings for workflow runs."""

    log_dir: str = ".tmp/logs"
    log_to_file: bool = False
    log_level: str = "INFO"
    console: bool = True

    def __post_init__(self):
        self.log_level = self.log_level.upper()
        if self.log_level not in LEVELS:
            raise ValueError(f"Invalid log level {self.log_level!r}, expected one of {LEVELS}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from STEPFLOW_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ
        """
        env = os.environ if environ is None else environ
        return cls(
            log_dir=env.get("STEPFLOW_LOG_DIR", cls.log_dir),
            log_to_file=_parse_bool("STEPFLOW_LOG_TO_FILE", env.get("STEPFLOW_LOG_TO_FILE", "false")),
            log_level=env.get("STEPFLOW_LOG_LEVEL", cls.log_level),
            console=_parse_bool("STEPFLOW_CONSOLE", env.get("STEPFLOW_CONSOLE", "true")),
        )
