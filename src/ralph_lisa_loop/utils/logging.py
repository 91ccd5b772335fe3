"""Logging setup for the CLI and the watcher."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ralph_lisa_loop.constants import LOG_LEVEL_ENV

LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(default: str) -> int:
    """Level from RL_LOG_LEVEL, falling back to ``default`` on unknown names."""
    name = os.getenv(LOG_LEVEL_ENV, "").strip().upper() or default.upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.getLevelName(default.upper())
    return level


def setup_logging(level: Union[int, str] = logging.WARNING, log_file: Optional[Path] = None) -> logging.Logger:
    """Configure the ``ralph_lisa_loop`` logger: stderr always, ``log_file`` if given."""
    logger = logging.getLogger("ralph_lisa_loop")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
