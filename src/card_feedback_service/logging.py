"""
Structured JSON logging for the card feedback service.

Every line carries the service name so card action logs can be told apart
when several services share a collector. Bearer tokens and raw
Authorization values never reach the output.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler
from typing import Any

from card_feedback_service.config import REDACTION_MARKER

SERVICE_LOGGER_NAME = "card_feedback_service"
LOG_FILE_NAME = "card-feedback.log"
LOG_BACKUP_DAYS = 14

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Extra fields whose values are replaced before formatting
REDACTED_FIELDS: frozenset[str] = frozenset({"token", "authorization", "bearer_token"})

_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def __init__(self, service_name: str | None = None) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC)
        entry: dict[str, Any] = {
            "timestamp": timestamp.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service_name:
            entry["service"] = self.service_name

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: REDACTION_MARKER if key.lower() in REDACTED_FIELDS else value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(level: str, service_name: str, directory: str) -> logging.Logger:
    """
    Configure the service logger.

    Lines go to stdout and to ``card-feedback.log`` in ``directory``, which
    rolls over at UTC midnight keeping two weeks of dated backups.

    Raises:
        ValueError: If level is not a valid log level
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {sorted(VALID_LOG_LEVELS)}")

    numeric_level = getattr(logging, level_upper)

    logger = logging.getLogger(SERVICE_LOGGER_NAME)
    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    formatter = JSONFormatter(service_name)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    os.makedirs(directory, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        os.path.join(directory, LOG_FILE_NAME),
        when="midnight",
        utc=True,
        backupCount=LOG_BACKUP_DAYS,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug("Logging configured", extra={"level": level_upper})
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the service namespace."""
    if name == SERVICE_LOGGER_NAME or name.startswith(f"{SERVICE_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{SERVICE_LOGGER_NAME}.{name}")
