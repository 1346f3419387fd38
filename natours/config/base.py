"""
Base configuration module for the Natours API.

This module provides the base settings class that the environment-specific
settings classes inherit from.
"""

from typing import List

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class BaseAppSettings(BaseSettings):
    """
    Base settings class for application configuration.

    Attributes:
        APP_NAME: The name of the application
        DEBUG: Flag to enable/disable debug mode
        VERSION: Application version string
        API_PREFIX: Path prefix resource routers are mounted under
        DATABASE_URL: Async database connection URL
        DB_ECHO: Enable SQL query logging (echo)
        LOG_LEVEL: Logging level name
        LOG_JSON_FORMAT: Emit logs as JSON
        REQUEST_LOGGING: Log every request with status and duration
        DEFAULT_PAGE_SIZE: Page size used when a request sends no valid limit
        DEFAULT_SORT: Sort applied when a request sends no sort
        HIDDEN_FIELDS: Internal fields excluded when a request sends no fields
        STRICT_PAGINATION: Reject pages that start past the last result
    """

    APP_NAME: str = Field(default="Natours")
    DEBUG: bool = Field(default=False)
    VERSION: str = Field(default="0.1.0")
    API_PREFIX: str = Field(default="/api/v1")

    # Database configuration
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./natours.db",
        description="Async database connection URL",
    )
    DB_ECHO: bool = Field(default=False, description="Enable SQL query logging (echo)")

    # Logging configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level name")
    LOG_JSON_FORMAT: bool = Field(default=False, description="Emit logs as JSON")
    REQUEST_LOGGING: bool = Field(
        default=False, description="Log every request with status and duration"
    )

    # Query features configuration
    DEFAULT_PAGE_SIZE: int = Field(
        default=10, description="Page size used when no valid limit is sent"
    )
    DEFAULT_SORT: str = Field(
        default="-createdAt", description="Sort applied when no sort is sent"
    )
    HIDDEN_FIELDS: List[str] = Field(
        default_factory=lambda: ["__v"],
        description="Internal fields excluded when no fields are sent",
    )
    STRICT_PAGINATION: bool = Field(
        default=False,
        description="Raise NotFound for a page that starts past the last result",
    )

    @field_validator("DATABASE_URL", mode="before")
    def validate_database_url(cls, value):
        """
        Ensure DATABASE_URL uses an async driver.
        """
        if value and value.startswith("postgresql://"):
            raise ValueError(
                "DATABASE_URL must start with 'postgresql+asyncpg://' for the async engine. "
                f"You provided: {value}"
            )
        if value and value.startswith("sqlite://"):
            raise ValueError(
                "DATABASE_URL must start with 'sqlite+aiosqlite://' for the async engine. "
                f"You provided: {value}"
            )
        return value

    @field_validator("DEFAULT_PAGE_SIZE")
    def validate_page_size(cls, value):
        """Page size must be a positive integer."""
        if value < 1:
            raise ValueError("DEFAULT_PAGE_SIZE must be a positive integer")
        return value

    @field_validator("DEFAULT_SORT")
    def validate_default_sort(cls, value):
        """List endpoints always need a deterministic order."""
        if not value or not value.strip():
            raise ValueError("DEFAULT_SORT must name at least one field")
        return value.strip()

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")
