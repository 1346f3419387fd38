"""
Unit tests for the application factory.

Covers:
- Title and version defaults
- Delegation to error, database and middleware setup
- End-to-end wiring with a resource router
"""
from unittest.mock import MagicMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from natours.api import create_resource_router
from natours.config import BaseAppSettings, TestingSettings
from natours.factory import configure_app
from natours.factory.app import DEFAULT_TITLE, DEFAULT_VERSION


def test_configure_app_sets_title_and_version():
    app = FastAPI()
    configure_app(app, BaseAppSettings(VERSION="2.0.0"), use_database=False)
    assert app.title == "Natours"
    assert app.version == "2.0.0"


def test_defaults_match_fastapi():
    app = FastAPI()
    assert (app.title, app.version) == (DEFAULT_TITLE, DEFAULT_VERSION)


def test_configure_app_keeps_explicit_title():
    app = FastAPI(title="Tours API", version="9.9.9")
    configure_app(app, BaseAppSettings(), use_database=False)
    assert app.title == "Tours API"
    assert app.version == "9.9.9"


def test_configure_app_delegates():
    app = FastAPI()
    settings = TestingSettings()
    metadata = MagicMock()
    with patch("natours.factory.app.setup_errors") as errors, patch(
        "natours.factory.app.setup_db"
    ) as db, patch("natours.factory.app.setup_middlewares") as middlewares:
        configure_app(app, settings, create_tables=metadata)
    errors.assert_called_once()
    db.assert_called_once()
    assert db.call_args[1]["create_tables"] is metadata
    middlewares.assert_called_once()


def test_configure_app_without_database():
    with patch("natours.factory.app.setup_db") as db:
        configure_app(FastAPI(), TestingSettings(), use_database=False)
    db.assert_not_called()


def test_configure_app_loads_settings_from_environment(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("APP_NAME", "Natours Test")
    app = FastAPI()
    configure_app(app, use_database=False)
    assert app.title == "Natours Test"


def test_configured_app_serves_resources(tours):
    app = FastAPI()
    settings = TestingSettings()
    configure_app(app, settings, use_database=False)
    app.include_router(
        create_resource_router(tours, settings=settings),
        prefix=f"{settings.API_PREFIX}/tours",
    )
    client = TestClient(app)
    assert client.get("/api/v1/tours").json()["results"] == 3
    assert client.get("/api/v1/tours/unknown").json()["status"] == "fail"
