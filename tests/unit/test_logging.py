"""
Unit tests for the logging module.

Covers:
- Logger creation and retrieval (get_logger, ensure_logger)
- Logger configuration (setup_logger)
- JSON formatter output (JsonFormatter)
"""
import json
import logging
import sys

import pytest

from natours.logging import (
    JsonFormatter,
    configure_logging,
    ensure_logger,
    get_logger,
    setup_logger,
)
from natours.logging.manager import logging_options, resolve_level


@pytest.fixture
def dummy_settings():
    class DummySettings:
        DEBUG = False
        LOG_LEVEL = "WARNING"
        LOG_JSON_FORMAT = False

    return DummySettings()


def test_get_logger_reads_settings(dummy_settings):
    logger = get_logger("test.module", dummy_settings)
    assert isinstance(logger, logging.Logger)
    assert logger.name == "test.module"
    assert logger.level == logging.WARNING


def test_get_logger_debug_overrides_level(dummy_settings):
    dummy_settings.DEBUG = True
    assert get_logger("test.debug", dummy_settings).level == logging.DEBUG


def test_get_logger_without_settings_defaults_to_info():
    assert get_logger("test.defaults").level == logging.INFO


def test_get_logger_json_format(dummy_settings):
    dummy_settings.LOG_JSON_FORMAT = True
    logger = get_logger("test.json_settings", dummy_settings)
    assert isinstance(logger.handlers[0].formatter, JsonFormatter)
    plain = get_logger("test.json_override", dummy_settings, json_format=False)
    assert not isinstance(plain.handlers[0].formatter, JsonFormatter)


def test_ensure_logger_returns_existing_logger(dummy_settings):
    logger = get_logger("test.ensure", dummy_settings)
    assert ensure_logger(logger, "other", dummy_settings) is logger


def test_ensure_logger_creates_new_logger(dummy_settings):
    ensured = ensure_logger(None, "test.ensure2", dummy_settings)
    assert ensured.name == "test.ensure2"


def test_ensure_logger_raises_without_name():
    with pytest.raises(ValueError):
        ensure_logger()


def test_setup_logger_replaces_handlers():
    logger = logging.getLogger("test.handler")
    logger.handlers.clear()
    logger.addHandler(logging.StreamHandler())
    setup_logger("test.handler")
    assert len(logger.handlers) == 1
    assert logger.handlers[0].stream is sys.stdout


def test_setup_logger_invalid_level():
    assert setup_logger("test.invalid", level="NOTALEVEL").level == logging.INFO


def test_json_formatter_output():
    formatter = JsonFormatter()
    record = logging.LogRecord(
        name="test.json",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Listed %d tours",
        args=(3,),
        exc_info=None,
    )
    payload = json.loads(formatter.format(record))
    assert payload["message"] == "Listed 3 tours"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.json"
    assert "timestamp" in payload
    assert "exception" not in payload


def test_json_formatter_includes_exception():
    formatter = JsonFormatter()
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        exc_info = sys.exc_info()
    record = logging.LogRecord("test.json", logging.ERROR, __file__, 1, "failed", (), exc_info)
    payload = json.loads(formatter.format(record))
    assert "RuntimeError: boom" in payload["exception"]


def test_json_formatter_includes_request_fields():
    formatter = JsonFormatter()
    record = logging.LogRecord("test.json", logging.INFO, __file__, 1, "GET /tours 200", (), None)
    record.method = "GET"
    record.path = "/tours"
    record.status_code = 200
    record.duration_ms = 1.5
    payload = json.loads(formatter.format(record))
    assert payload["method"] == "GET"
    assert payload["path"] == "/tours"
    assert payload["status_code"] == 200
    assert payload["duration_ms"] == 1.5
    assert payload["timestamp"].endswith("+00:00")


def test_resolve_level():
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level("NOTALEVEL") == logging.INFO
    assert resolve_level("basicConfig") == logging.INFO
    assert resolve_level("ERROR", debug=True) == logging.DEBUG


def test_logging_options_without_settings():
    assert logging_options(None) == ("INFO", False, False)


def test_setup_logger_does_not_propagate():
    assert setup_logger("test.propagate").propagate is False


def test_configure_logging_sets_up_package_logger(dummy_settings):
    logger = configure_logging(dummy_settings)
    assert logger.name == "natours"
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
    child = logging.getLogger("natours.db.memory")
    assert child.getEffectiveLevel() == logging.WARNING
