"""Structured logging for h5container.

All loggers live under the ``h5container`` stdlib logger, which gets a single
console handler rendering structlog events. The level is read from the
``H5CONTAINER_LOG_LEVEL`` environment variable.
"""

from __future__ import annotations

import logging.config
import os
from contextlib import contextmanager
from typing import Any, Generator

import structlog

ROOT_LOGGER_NAME = "h5container"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_LOG_LEVEL = "WARNING"

_configured = False


def env_level() -> str:
    level = os.environ.get("H5CONTAINER_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if level not in VALID_LOG_LEVELS:
        return DEFAULT_LOG_LEVEL
    return level


def _pre_chain() -> list[Any]:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%dT%H:%M:%S", utc=False),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.ExtraAdder(),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(level: str | None = None) -> None:
    """Install the console handler and structlog processors.

    Args:
        level: Log level name. Defaults to ``H5CONTAINER_LOG_LEVEL``.

    Raises:
        ValueError: If ``level`` is not a valid level name.
    """
    global _configured

    level = (level or env_level()).upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid logging level: {level}")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.dev.ConsoleRenderer(colors=False),
                ],
                "foreign_pre_chain": _pre_chain(),
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
            },
        },
        "loggers": {
            ROOT_LOGGER_NAME: {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
    })
    structlog.configure(
        processors=[
            *_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str = ROOT_LOGGER_NAME) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``, configuring on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


@contextmanager
def temporary_log_level(level: str) -> Generator[None, Any, None]:
    """Temporarily change the level of the ``h5container`` logger."""
    stdlib_logger = logging.getLogger(ROOT_LOGGER_NAME)
    original_level = stdlib_logger.level
    stdlib_logger.setLevel(getattr(logging, level.upper()))
    try:
        yield
    finally:
        stdlib_logger.setLevel(original_level)
