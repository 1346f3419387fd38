"""
Logging module for the Natours API.

This module provides a simple logging interface
that integrates with application settings.

Limitations:
- Only console (stdout) logging is supported out of the box.
- No file logging, log rotation, or external service integration.
"""

from natours.logging.formatters import JsonFormatter
from natours.logging.manager import (
    Logger,
    configure_logging,
    ensure_logger,
    get_logger,
    setup_logger,
)

__all__ = [
    "Logger",
    "get_logger",
    "ensure_logger",
    "setup_logger",
    "configure_logging",
    "JsonFormatter",
]
