"""
Logging configuration for the Natours API.

Loggers write to stdout, as plain text or JSON. ``configure_logging`` sets up
the ``natours`` package logger once per application so every module logger
below it (query adapters, handlers, middleware) shares one handler.
"""

import logging
import sys
from typing import Any, Optional, Tuple

from natours.logging.formatters import JsonFormatter

Logger = logging.Logger

PACKAGE_LOGGER = "natours"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: Any, debug: bool = False) -> int:
    """Map a level name to its ``logging`` constant; unknown names mean INFO."""
    if debug:
        return logging.DEBUG
    resolved = getattr(logging, str(level).upper(), logging.INFO)
    return resolved if isinstance(resolved, int) else logging.INFO


def logging_options(settings: Optional[Any]) -> Tuple[str, bool, bool]:
    """Read ``(LOG_LEVEL, DEBUG, LOG_JSON_FORMAT)``, tolerating missing attributes."""
    return (
        getattr(settings, "LOG_LEVEL", "INFO"),
        bool(getattr(settings, "DEBUG", False)),
        bool(getattr(settings, "LOG_JSON_FORMAT", False)),
    )


def setup_logger(
    name: str,
    level: str = "INFO",
    format: str = DEFAULT_FORMAT,
    debug: bool = False,
    json_format: bool = False,
) -> logging.Logger:
    """
    Create and configure a logger instance.

    Existing handlers of the logger are replaced by a single stdout handler
    and records do not propagate further, so each line is written once.

    Args:
        name: Logger name (usually __name__)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log message format (ignored if json_format=True)
        debug: If True, sets level to DEBUG regardless of level parameter
        json_format: If True, outputs logs in JSON format

    Returns:
        Configured logger instance
    """
    log_level = resolve_level(level, debug)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(format))
    logger.addHandler(handler)

    return logger


def get_logger(
    name: str, settings: Optional[Any] = None, json_format: Optional[bool] = None
) -> logging.Logger:
    """
    Get a logger configured from ``DEBUG``, ``LOG_LEVEL`` and ``LOG_JSON_FORMAT``.

    ``json_format`` overrides the settings value when given.
    """
    level, debug, settings_json = logging_options(settings)
    if json_format is None:
        json_format = settings_json
    return setup_logger(name, level=level, debug=debug, json_format=json_format)


def configure_logging(settings: Optional[Any] = None) -> logging.Logger:
    """
    Configure the ``natours`` package logger from settings.

    Module loggers created with ``logging.getLogger(__name__)`` inside the
    package propagate to it.
    """
    return get_logger(PACKAGE_LOGGER, settings)


def ensure_logger(
    logger: Optional[logging.Logger] = None,
    name: Optional[str] = None,
    settings: Optional[Any] = None,
    json_format: Optional[bool] = None,
) -> logging.Logger:
    """
    Return the provided logger, or create one for ``name``.

    Raises:
        ValueError: If neither a logger nor a name is given
    """
    if logger:
        return logger

    if not name:
        raise ValueError("Module name must be provided when logger is not specified")

    return get_logger(name, settings, json_format)
