"""
Natours - resource API core for FastAPI applications.

This package provides the list query pipeline (filter, sort, field
selection, pagination), generic CRUD handlers over a document model, and
the configuration, logging and error handling needed to serve them.

Usage:
    from fastapi import FastAPI
    from natours.api import create_resource_router
    from natours.db import InMemoryModel
    from natours.factory import configure_app

    app = FastAPI()
    configure_app(app, use_database=False)
    app.include_router(create_resource_router(InMemoryModel("Tour")), prefix="/api/v1/tours")
"""

__version__ = "0.1.0"

# Public API exports
from natours.api import QueryFeatures, ResourceHandlers, create_resource_router
from natours.config import BaseAppSettings, get_settings
from natours.errors import AppError, setup_errors
from natours.factory import configure_app
from natours.logging import get_logger
from natours.schemas import ErrorResponse, ResourceResponse
