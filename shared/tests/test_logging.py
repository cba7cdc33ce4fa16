"""
Tests for structured logging.
"""

import json
import logging
from uuid import uuid4
from shared.logging import get_logger, set_export_id, get_export_id, JSONFormatter


def test_get_logger_creates_logger():
    """Test that get_logger creates a logger instance."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "test_module"


def test_get_logger_configures_once():
    """Test that repeated calls don't stack handlers."""
    first = get_logger("test_module_once")
    handler_count = len(first.handlers)
    second = get_logger("test_module_once")
    assert first is second
    assert len(second.handlers) == handler_count


def test_logger_outputs_json_format(caplog):
    """Test that logger outputs JSON format."""
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)

    logger.info("Test message", extra={"key": "value"})

    assert len(caplog.records) > 0
    log_data = json.loads(JSONFormatter().format(caplog.records[-1]))
    assert log_data["level"] == "INFO"
    assert log_data["message"] == "Test message"
    assert log_data["key"] == "value"
    assert log_data["timestamp"].endswith("Z")


def test_logger_includes_export_id(caplog):
    """Test that logger includes export_id when set in context."""
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)

    set_export_id("1700000000000_abcd1234")
    try:
        logger.info("Test message")
        log_data = json.loads(JSONFormatter().format(caplog.records[-1]))
        assert log_data["export_id"] == "1700000000000_abcd1234"
    finally:
        set_export_id(None)


def test_logger_excludes_export_id_when_not_set(caplog):
    """Test that logger excludes export_id when not set."""
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)

    set_export_id(None)
    logger.info("Test message")

    log_data = json.loads(JSONFormatter().format(caplog.records[-1]))
    assert "export_id" not in log_data


def test_set_get_export_id():
    """Test that export_id can be set and retrieved."""
    set_export_id("abc")
    assert get_export_id() == "abc"

    set_export_id(None)
    assert get_export_id() is None


def test_logger_includes_exception(caplog):
    """Test that logger includes exception information."""
    logger = get_logger("test_module")
    logger.setLevel(logging.ERROR)

    try:
        raise ValueError("Test error")
    except ValueError:
        logger.exception("Exception occurred")

    log_data = json.loads(JSONFormatter().format(caplog.records[-1]))
    assert "ValueError" in log_data["exception"]
    assert "Test error" in log_data["exception"]


def test_logger_handles_complex_types(caplog):
    """Test that complex extra fields are converted to strings."""
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)

    logger.info("Test message", extra={
        "command": ["ffmpeg", "-i", "in.mp4"],
        "timings": {"muxing": 1.5},
        "uuid": uuid4()
    })

    log_data = json.loads(JSONFormatter().format(caplog.records[-1]))
    assert isinstance(log_data["command"], str)
    assert isinstance(log_data["timings"], str)
    assert isinstance(log_data["uuid"], str)
