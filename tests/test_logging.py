"""
Tests for the logging module.

This test module validates:
- JSON-formatted structured logging output
- Logger configuration and setup
- Extra fields in log entries
"""

from __future__ import annotations

import json
import logging
from io import StringIO

from relctl.config import LoggingConfig
from relctl.logging import JSONFormatter, get_logger, setup_logging

# =============================================================================
# Tests for JSONFormatter
# =============================================================================


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_format_basic_log_record(self) -> None:
        """Test formatting a basic log record as JSON."""
        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="test_logger",
            level=logging.INFO,
            pathname="test.py",
            lineno=10,
            msg="Test message",
            args=(),
            exc_info=None,
        )

        parsed = json.loads(formatter.format(record))

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test_logger"
        assert parsed["message"] == "Test message"
        assert "timestamp" in parsed

    def test_format_with_extra_fields(self) -> None:
        """Test formatting with extra fields."""
        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="test_logger",
            level=logging.INFO,
            pathname="test.py",
            lineno=10,
            msg="Promoted",
            args=(),
            exc_info=None,
        )
        record.current_path = "/usr/local/bin/relctl"

        parsed = json.loads(formatter.format(record))

        assert parsed["current_path"] == "/usr/local/bin/relctl"

    def test_format_with_exception(self) -> None:
        """Test that exception info is included."""
        formatter = JSONFormatter()
        try:
            raise ValueError("bad")
        except ValueError:
            import sys

            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="test_logger",
            level=logging.ERROR,
            pathname="test.py",
            lineno=10,
            msg="Failed",
            args=(),
            exc_info=exc_info,
        )

        parsed = json.loads(formatter.format(record))

        assert "ValueError: bad" in parsed["exception"]


# =============================================================================
# Tests for setup_logging / get_logger
# =============================================================================


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_json_output(self) -> None:
        """Test that setup_logging emits JSON to the given stream."""
        stream = StringIO()
        logger = setup_logging(level="INFO", stream=stream)
        get_logger("upgrade.test").info("hello", extra={"version": "v0.2.21"})

        parsed = json.loads(stream.getvalue().strip())
        assert logger.name == "relctl"
        assert parsed["message"] == "hello"
        assert parsed["version"] == "v0.2.21"
        assert parsed["logger"] == "relctl.upgrade.test"

    def test_setup_logging_from_config(self) -> None:
        """Test that level and format come from LoggingConfig."""
        stream = StringIO()
        logger = setup_logging(
            LoggingConfig(level="debug", json_format=False), stream=stream
        )
        logger.debug("plain text")

        assert logger.level == logging.DEBUG
        assert " - relctl - DEBUG - plain text" in stream.getvalue()

    def test_debug_mode_forces_plain_debug_output(self) -> None:
        """Test that debug mode overrides the configured level and format."""
        stream = StringIO()
        logger = setup_logging(
            LoggingConfig(level="error", json_format=True, debug_mode=True),
            stream=stream,
        )
        get_logger("upgrade.test").debug("detail")

        assert logger.level == logging.DEBUG
        assert " - relctl.upgrade.test - DEBUG - detail" in stream.getvalue()

    def test_setup_logging_replaces_handlers(self) -> None:
        """Test that repeated setup does not duplicate handlers."""
        setup_logging(level="INFO")
        logger = setup_logging(level="INFO")
        assert len(logger.handlers) == 1

    def test_get_logger_adds_prefix(self) -> None:
        """Test that get_logger prefixes module names."""
        assert get_logger("foo").name == "relctl.foo"
        assert get_logger("relctl.upgrade").name == "relctl.upgrade"
