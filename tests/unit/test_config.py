"""
Unit tests for the config module.

Covers:
- Defaults of BaseAppSettings
- Environment variable loading and validation
- Environment-specific settings selection via APP_ENV
"""
import pytest
from pydantic import ValidationError

from natours.config import (
    BaseAppSettings,
    DevelopmentSettings,
    ProductionSettings,
    TestingSettings,
    get_settings,
)


def test_base_defaults():
    settings = BaseAppSettings()
    assert settings.APP_NAME == "Natours"
    assert settings.API_PREFIX == "/api/v1"
    assert settings.DEFAULT_PAGE_SIZE == 10
    assert settings.DEFAULT_SORT == "-createdAt"
    assert settings.HIDDEN_FIELDS == ["__v"]
    assert settings.STRICT_PAGINATION is False
    assert settings.DATABASE_URL.startswith("sqlite+aiosqlite://")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "25")
    monkeypatch.setenv("DEFAULT_SORT", " name ")
    monkeypatch.setenv("HIDDEN_FIELDS", '["__v", "secretTour"]')
    monkeypatch.setenv("STRICT_PAGINATION", "true")
    settings = BaseAppSettings()
    assert settings.DEFAULT_PAGE_SIZE == 25
    assert settings.DEFAULT_SORT == "name"
    assert settings.HIDDEN_FIELDS == ["__v", "secretTour"]
    assert settings.STRICT_PAGINATION is True


@pytest.mark.parametrize(
    "url",
    ["postgresql://user:pw@localhost/natours", "sqlite:///./natours.db"],
)
def test_sync_database_urls_are_rejected(url):
    with pytest.raises(ValidationError):
        BaseAppSettings(DATABASE_URL=url)


def test_async_database_url_is_accepted():
    settings = BaseAppSettings(DATABASE_URL="postgresql+asyncpg://u:p@db/natours")
    assert settings.DATABASE_URL.startswith("postgresql+asyncpg://")


@pytest.mark.parametrize("size", [0, -1])
def test_page_size_must_be_positive(size):
    with pytest.raises(ValidationError):
        BaseAppSettings(DEFAULT_PAGE_SIZE=size)


def test_default_sort_must_not_be_blank():
    with pytest.raises(ValidationError):
        BaseAppSettings(DEFAULT_SORT="   ")


def test_environment_settings():
    assert DevelopmentSettings().DEBUG is True
    assert DevelopmentSettings().REQUEST_LOGGING is True
    assert TestingSettings().DATABASE_URL == "sqlite+aiosqlite:///:memory:"
    assert ProductionSettings().DEBUG is False
    assert ProductionSettings().LOG_JSON_FORMAT is True


@pytest.mark.parametrize(
    "env,expected",
    [
        (None, DevelopmentSettings),
        ("development", DevelopmentSettings),
        ("testing", TestingSettings),
        ("production", ProductionSettings),
        ("unknown", DevelopmentSettings),
    ],
)
def test_get_settings_by_app_env(monkeypatch, env, expected):
    if env is not None:
        monkeypatch.setenv("APP_ENV", env)
    assert type(get_settings()) is expected
