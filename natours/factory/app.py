"""
FastAPI application factory module.

This module provides a function to configure FastAPI applications
with standardized settings and error handling.
"""

from typing import Optional

from fastapi import FastAPI
from sqlalchemy import MetaData

from natours.config import BaseAppSettings, get_settings
from natours.db import setup_db
from natours.errors import setup_errors
from natours.logging.manager import configure_logging, ensure_logger
from natours.middleware import setup_middlewares

DEFAULT_TITLE = "FastAPI"
DEFAULT_VERSION = "0.1.0"


def configure_app(
    app: FastAPI,
    settings: Optional[BaseAppSettings] = None,
    *,
    use_database: bool = True,
    create_tables: Optional[MetaData] = None,
) -> None:
    """
    Configure a FastAPI application with standard settings and error handling.

    The application instance should be created by the main application and passed
    to this function for configuration.

    Args:
        app: The FastAPI application to configure
        settings: Optional application settings, if not provided will be loaded
                 from environment
        use_database: Whether to manage the SQLAlchemy engine lifecycle
        create_tables: Metadata whose tables are created on startup
    """
    app_settings = settings or get_settings()
    configure_logging(app_settings)
    logger = ensure_logger(None, __name__, app_settings)

    # Keep explicit titles and versions given to FastAPI()
    if not app.title or app.title == DEFAULT_TITLE:
        app.title = app_settings.APP_NAME
    if not app.version or app.version == DEFAULT_VERSION:
        app.version = app_settings.VERSION

    # Configure error handling (required)
    setup_errors(app, app_settings, logger)
    # Configure database
    if use_database:
        setup_db(app, app_settings, logger, create_tables=create_tables)
    # Configure middleware (request logging)
    setup_middlewares(app, app_settings, logger)
