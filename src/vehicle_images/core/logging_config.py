"""Logging setup shared by the CLI, the HTTP app and the services."""

import logging
import os
import sys
from typing import Optional

DEFAULT_LOGGER_NAME = "vehicle-images"

_FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Optional[str]) -> int:
    resolved = logging.getLevelName((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure a stdout logger, adding its handler only once per name.

    Args:
        name: Logger name
        level: Log level; ``LOG_LEVEL`` applies when omitted, unknown names mean INFO
        format_type: "structured" or "simple"; ``LOG_FORMAT`` takes precedence

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        format_name = os.getenv("LOG_FORMAT", format_type).lower()
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                _FORMATS.get(format_name, _FORMATS["structured"]), datefmt=_DATE_FORMAT
            )
        )
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    return setup_logger(name)
