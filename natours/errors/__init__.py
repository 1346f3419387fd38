"""
Error handling module for the Natours API.

This module provides the exception taxonomy raised by the query pipeline,
resource handlers and persistence adapters, plus the centralized handlers
that translate them into responses.

Limitations:
- Error response structure is fixed; customization requires code changes.
"""

from natours.errors.exceptions import (
    AppError,
    CastError,
    DBError,
    DuplicateFieldError,
    ExecutionError,
    NotFoundError,
    ValidationError,
)
from natours.errors.handlers import register_exception_handlers
from natours.errors.manager import setup_errors

__all__ = [
    "setup_errors",
    "register_exception_handlers",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "ExecutionError",
    "CastError",
    "DuplicateFieldError",
    "DBError",
]
