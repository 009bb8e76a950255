"""Logging setup for Converge: stdlib logging to stderr under the ``converge`` namespace."""

import logging
import os
import sys
from typing import Optional, Union

LOG_LEVEL_ENV = "CONVERGE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: Union[int, str, None]) -> int:
    """
    Turn a level name or number into a logging level.

    None falls back to ``CONVERGE_LOG_LEVEL`` and then INFO; an unrecognised
    environment value is ignored.

    Raises:
        ValueError: If an explicit level name is not recognised
    """
    if level is None:
        try:
            return resolve_level(os.environ.get(LOG_LEVEL_ENV) or logging.INFO)
        except ValueError:
            return logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(level: Union[int, str, None] = None, format_string: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``converge`` logger.

    Safe to call more than once: the first call installs the stderr handler,
    later calls (e.g. from the CLI's ``--log-level``) only change the level.

    Args:
        level: Level name or number; defaults to ``CONVERGE_LOG_LEVEL`` or INFO
        format_string: Custom format string (optional)

    Returns:
        The ``converge`` logger
    """
    logging.basicConfig(
        format=format_string or DEFAULT_FORMAT,
        stream=sys.stderr,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    logger = logging.getLogger("converge")
    logger.setLevel(resolve_level(level))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``converge`` namespace, e.g. ``converge.engine.runner``."""
    return logging.getLogger(f"converge.{name}")
