"""
Error handling setup for Natours applications.

Two response modes exist. In development (``DEBUG`` on) error bodies carry
the error details and a stack trace. In production only the message and the
error list are sent, and unexpected failures are masked.
"""

from typing import Any, Optional

from fastapi import FastAPI

from natours.errors.handlers import register_exception_handlers
from natours.logging import Logger, ensure_logger


def is_debug(settings: Optional[Any]) -> bool:
    """Whether error bodies should expose details, read from ``settings.DEBUG``."""
    return bool(getattr(settings, "DEBUG", False))


def setup_errors(
    app: FastAPI,
    settings: Optional[Any] = None,
    logger: Optional[Logger] = None,
) -> None:
    """
    Register the centralized exception handlers on ``app``.

    Args:
        app: FastAPI application instance
        settings: Optional application settings; without them the
            production mode is used
        logger: Logger receiving unexpected errors
    """
    log = ensure_logger(logger, __name__, settings)
    debug = is_debug(settings)
    register_exception_handlers(app, logger=log, debug=debug)
    log.debug(f"Error handlers registered ({'development' if debug else 'production'} mode)")
