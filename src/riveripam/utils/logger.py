"""
Logging utilities for riveripam.

Thin layer over loguru. Components obtain a logger bound to their own
component name via get_logger() and accept an explicit logger at
construction, so nothing reaches for a shared module-level instance when a
caller supplies its own.

Usage:
    from riveripam.utils.logger import configure_logging, get_logger

    configure_logging(LogLevel.DEBUG)
    logger = get_logger(__name__)
    logger.info("ready")
"""

import sys
import traceback

from loguru import logger as _logger

from riveripam.models.enums import LogLevel

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)

_LEVELS = {
    LogLevel.FULL: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARNING",
}


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: str | None = None,
) -> None:
    """
    Install riveripam's log sinks.

    Args:
        level: Verbosity level.
        log_file: Optional path of a rotating log file.
    """
    loguru_level = _LEVELS[LogLevel(level)]

    _logger.remove()
    # Records logged without a bound component still render with _FORMAT
    _logger.configure(extra={"component": "riveripam"})
    _logger.add(sys.stderr, format=_FORMAT, level=loguru_level, colorize=True)

    if log_file:
        _logger.add(
            log_file,
            format=_FORMAT,
            level=loguru_level,
            rotation="10 MB",
            retention="7 days",
        )


def get_logger(name: str):
    """Get a logger bound to a component name."""
    return _logger.bind(component=name)


def format_traceback(exc: BaseException) -> str:
    """Render an exception with its traceback as a single string."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
