"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from card_feedback_service.logging import (
    LOG_FILE_NAME,
    SERVICE_LOGGER_NAME,
    JSONFormatter,
    get_logger,
    setup_logging,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.unit
class TestJSONFormatter:
    """Records render as single JSON objects."""

    def test_basic_fields(self) -> None:
        record = logging.LogRecord("svc", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["logger"] == "svc"
        assert data["message"] == "hello world"
        assert "extra" not in data

    def test_extra_fields_collected(self) -> None:
        record = logging.LogRecord("svc", logging.WARNING, __file__, 1, "msg", None, None)
        record.sender = "john.doe@contoso.com"
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"sender": "john.doe@contoso.com"}

    def test_service_name_included(self) -> None:
        record = logging.LogRecord("svc", logging.INFO, __file__, 1, "msg", None, None)
        data = json.loads(JSONFormatter("card-feedback").format(record))
        assert data["service"] == "card-feedback"
        assert data["timestamp"].endswith("+00:00")

    def test_token_fields_redacted(self) -> None:
        record = logging.LogRecord("svc", logging.INFO, __file__, 1, "msg", None, None)
        record.token = "eyJhbGciOi.secret"
        record.sender = "john.doe@contoso.com"
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"token": "***", "sender": "john.doe@contoso.com"}


@pytest.mark.unit
class TestSetupLogging:
    """Handler configuration."""

    def test_invalid_level_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging("LOUD", "card-feedback", str(tmp_path))

    def test_writes_service_log_file(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        logger = setup_logging("info", "card-feedback", str(log_dir))
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 2
        get_logger("tests").info("written", extra={"answer": 42})
        for handler in logger.handlers:
            handler.flush()
        files = list(log_dir.glob("*.log"))
        assert [file.name for file in files] == [LOG_FILE_NAME]
        last = json.loads(files[0].read_text().strip().splitlines()[-1])
        assert last["message"] == "written"
        assert last["extra"] == {"answer": 42}
        assert last["service"] == "card-feedback"

    def test_repeated_setup_replaces_handlers(self, tmp_path: Path) -> None:
        setup_logging("INFO", "card-feedback", str(tmp_path))
        logger = setup_logging("DEBUG", "card-feedback", str(tmp_path))
        assert len(logger.handlers) == 2
        assert logger.level == logging.DEBUG


@pytest.mark.unit
def test_get_logger_namespaces() -> None:
    assert get_logger("routers").name == f"{SERVICE_LOGGER_NAME}.routers"
    module_logger = get_logger("card_feedback_service.services.card_action")
    assert module_logger.name == "card_feedback_service.services.card_action"
