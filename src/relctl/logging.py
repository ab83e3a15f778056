"""
Structured logging for relctl.

Log records are emitted as JSON objects so that upgrade runs can be inspected
after the fact. Output goes to stderr, leaving stdout for command results.

Features:
- JSON-formatted log output for machine-readable logs
- Consistent field structure across all log entries
- Plain-text output for interactive debugging
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from relctl.config import LoggingConfig

# Default log format for plain-text output
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ROOT_LOGGER_NAME = "relctl"

# Attributes present on every LogRecord; anything else came in via `extra`
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """
    A logging formatter that outputs log records as JSON objects.

    Each log record is formatted as a JSON object with consistent fields:
    - timestamp: ISO 8601 formatted timestamp in UTC
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - Additional fields from the record's extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted string representation of the log record.
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in set(record.__dict__.keys()) - _RESERVED_RECORD_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    level: str = "WARNING",
    json_format: bool = True,
    stream: Any = None,
) -> logging.Logger:
    """
    Configure the logging system for relctl.

    Args:
        config: Optional LoggingConfig object with logging settings.
            If provided, overrides the keyword arguments.
            Debug mode forces plain-text output at DEBUG level.
        level: Default log level if no config is provided.
        json_format: Whether to use JSON formatting (default: True).
        stream: Stream to write to. Defaults to sys.stderr.

    Returns:
        The root logger configured for the relctl package.

    Example:
        >>> from relctl.logging import setup_logging
        >>> logger = setup_logging(level="DEBUG")
        >>> logger.info("Upgrade started", extra={"version": "v0.2.21"})
    """
    if config is not None:
        log_level = config.level.upper()
        json_format = config.json_format
        if config.debug_mode:
            log_level = "DEBUG"
            json_format = False
    else:
        log_level = level.upper()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level, logging.WARNING))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(getattr(logging, log_level, logging.WARNING))
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: The name for the logger, typically __name__ of the calling module.
            The "relctl." prefix is added automatically if not present.

    Returns:
        A logger that is a child of the relctl logger.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)
