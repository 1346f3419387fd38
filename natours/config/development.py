"""
Development environment specific settings.
"""

from .base import BaseAppSettings


class DevelopmentSettings(BaseAppSettings):
    """
    Settings class for development environment.

    Enables debug mode and request logging and uses a local SQLite database.

    Attributes:
        DEBUG: Always True in development
        REQUEST_LOGGING: Request logging on by default
        DATABASE_URL: Path to development database
    """

    DEBUG: bool = True
    REQUEST_LOGGING: bool = True
    DATABASE_URL: str = "sqlite+aiosqlite:///./natours-dev.db"
