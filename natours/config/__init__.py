"""
Configuration module for Natours.

This module provides:
- BaseAppSettings: The base class for application settings, supporting environment variable loading.
- Environment-specific settings (development, testing, production).
- get_settings: Factory for loading the correct settings class based on APP_ENV.

Example environment variables:

APP_NAME="Natours"
APP_ENV="development"  # Options: development, testing, production
DEBUG=true
API_PREFIX="/api/v1"
DATABASE_URL="sqlite+aiosqlite:///./natours.db"
LOG_LEVEL="INFO"
DEFAULT_PAGE_SIZE=10
DEFAULT_SORT="-createdAt"
HIDDEN_FIELDS='["__v"]'
STRICT_PAGINATION=false
"""

from .base import BaseAppSettings
from .development import DevelopmentSettings
from .production import ProductionSettings
from .settings import get_settings
from .testing import TestingSettings

__all__ = [
    "BaseAppSettings",
    "DevelopmentSettings",
    "ProductionSettings",
    "TestingSettings",
    "get_settings",
]
