from typing import Optional

from fastapi import FastAPI

from natours.config.base import BaseAppSettings
from natours.logging.manager import Logger, ensure_logger

from .request_logging import configure_request_logging


def setup_middlewares(
    app: FastAPI,
    settings: BaseAppSettings,
    logger: Optional[Logger] = None,
) -> None:
    """
    Sets up all middlewares for the application.

    Features:
    - Adds request logging middleware when settings.REQUEST_LOGGING is on

    Limitations:
    - Request logging is the only middleware included by default
    - Middleware is set up at startup, not dynamically per request
    """
    log = ensure_logger(logger, __name__, settings)

    if settings.REQUEST_LOGGING:
        configure_request_logging(app, logger=log)
        log.debug("Request logging middleware installed")
