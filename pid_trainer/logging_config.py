"""Logging setup for the pygame shell.

Core modules only create module-level loggers; the entry point decides where
records go. The level comes from ``PID_TRAINER_LOG_LEVEL`` (default WARNING).
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "PID_TRAINER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(raw: str | None) -> int:
    if raw is None or raw.strip() == "":
        return logging.WARNING
    name = raw.strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    if name.isdigit():
        return int(name)
    return logging.WARNING


def setup_logging(level: int | None = None) -> None:
    if level is None:
        level = resolve_level(os.environ.get(LOG_LEVEL_ENV))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("pid_trainer").setLevel(level)
