"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys

import pytest

from teambooks.logging_config import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def configured_logger(config):
    logger = setup_logging(config)
    yield logger
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _record(**overrides) -> logging.LogRecord:
    fields = dict(
        name="test.logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg="Test message",
        args=(),
        exc_info=None,
    )
    fields.update(overrides)
    return logging.LogRecord(**fields)


def test_json_formatter():
    """JSONFormatter emits the standard fields."""
    log_data = json.loads(JSONFormatter().format(_record()))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test.logger"
    assert log_data["message"] == "Test message"
    assert log_data["line"] == 42
    assert "timestamp" in log_data
    assert "extra" not in log_data


def test_json_formatter_with_exception_and_extra():
    try:
        raise ValueError("Test error")
    except ValueError:
        exc_info = sys.exc_info()

    record = _record(level=logging.ERROR, msg="Error occurred", exc_info=exc_info)
    record.team_id = 7
    log_data = json.loads(JSONFormatter().format(record))

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]
    assert log_data["extra"] == {"team_id": 7}


def test_setup_logging(config, configured_logger):
    """Logging setup writes JSON lines into the data directory."""
    assert configured_logger.name == "teambooks"
    assert len(configured_logger.handlers) == 2  # Console + File

    log_file = config.DATA_DIR / "logs" / "teambooks.log"
    get_logger("services.lifecycle").warning("Purged", extra={"entity": "book"})
    for handler in configured_logger.handlers:
        handler.flush()

    entries = [json.loads(line) for line in log_file.read_text().splitlines() if line.strip()]
    assert entries[0]["message"] == "Logging initialized"
    assert entries[-1]["logger"] == "teambooks.services.lifecycle"
    assert entries[-1]["extra"] == {"entity": "book"}


def test_get_logger_namespacing():
    assert get_logger("module1").name == "teambooks.module1"
    assert get_logger("teambooks.services.users").name == "teambooks.services.users"


@pytest.mark.parametrize("dev_mode", [True, False])
def test_console_level_by_mode(config, dev_mode):
    config.DEV_MODE = dev_mode
    logger = setup_logging(config)
    try:
        console = [
            h for h in logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert [h.level for h in console] == [logging.INFO if dev_mode else logging.WARNING]
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
