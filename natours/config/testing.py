"""
Testing environment specific settings.
"""

from .base import BaseAppSettings


class TestingSettings(BaseAppSettings):
    """
    Settings class for the test suite.

    Uses an in-memory SQLite database and keeps debug output in error bodies.
    """

    __test__ = False  # not a pytest test class

    DEBUG: bool = True
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
