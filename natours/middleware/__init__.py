"""
Middleware module for Natours.
"""

from .manager import setup_middlewares
from .request_logging import (
    RequestLoggingConfig,
    RequestLoggingMiddleware,
    configure_request_logging,
)

__all__ = [
    "setup_middlewares",
    "RequestLoggingMiddleware",
    "RequestLoggingConfig",
    "configure_request_logging",
]
