"""
Logging configuration for tmx_render.

The library modules only create loggers; setup_logging() is called by the
command line front end and the preview window.
"""

import logging
import os
import sys
from typing import Optional, Union

LOG_LEVEL_ENV = "TMX_RENDER_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        formatted = super().format(record)

        if record.levelname in formatted:
            formatted = formatted.replace(
                record.levelname, f"{color}{record.levelname}{reset}", 1
            )

        return formatted


def resolve_log_level(level: Optional[Union[int, str]] = None) -> int:
    """
    Turn a level name or number into a logging level.

    Without an explicit level, TMX_RENDER_LOG_LEVEL is used, then WARNING.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)

    if isinstance(level, int):
        return level

    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(level: Optional[Union[int, str]] = None, use_colors: bool = True) -> None:
    """Install a console handler on the tmx_render and tmx_manager loggers."""
    log_level = resolve_log_level(level)

    handler = logging.StreamHandler(sys.stderr)
    if use_colors and sys.stderr.isatty():
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    for name in ("tmx_render", "tmx_manager"):
        logger = logging.getLogger(name)
        # Replace handlers from a previous call
        for old in list(logger.handlers):
            logger.removeHandler(old)
        logger.addHandler(handler)
        logger.setLevel(log_level)
