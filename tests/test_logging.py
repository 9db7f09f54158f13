"""
Structured logging tests.

Covers the JSON formatter, logger setup and request-context logging.
"""

import json
import logging
import sys
from unittest.mock import MagicMock

from fastapi import Request

from paperform.logging import JSONFormatter, get_logger, log_with_context, request_context, setup_logging


def _record(msg: str = "Form validated", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="paperform.validation",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSON log lines."""

    def test_base_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "paperform.validation"
        assert entry["msg"] == "Form validated"
        assert "time" in entry
        assert "lineno" not in entry

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(_record(form_id="form-1", total_errors=2)))

        assert entry["form_id"] == "form-1"
        assert entry["total_errors"] == 2

    def test_non_serializable_extra(self):
        entry = json.loads(JSONFormatter().format(_record(path=object())))
        assert entry["path"].startswith("<object")

    def test_exception_included(self):
        try:
            raise ValueError("bad reading")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad reading" in entry["exception"]

    def test_non_ascii_kept(self):
        line = JSONFormatter().format(_record("Temperature 162°F"))
        assert "162°F" in line


class TestSetupLogging:
    """Test logger configuration."""

    def test_named_logger(self):
        setup_logging(level="DEBUG", format_type="json", logger_name="paperform.test")
        logger = logging.getLogger("paperform.test")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.propagate is False

    def test_text_format_and_unknown_level(self):
        setup_logging(level="chatty", format_type="text", logger_name="paperform.test.text")
        logger = logging.getLogger("paperform.test.text")

        assert logger.level == logging.INFO
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_repeated_setup_does_not_duplicate(self):
        setup_logging(logger_name="paperform.test.repeat")
        setup_logging(logger_name="paperform.test.repeat")

        assert len(logging.getLogger("paperform.test.repeat").handlers) == 1


class TestLogWithContext:
    """Test request context in log records."""

    def test_request_fields(self, caplog):
        request = MagicMock(spec=Request)
        request.state.request_id = "abc12345"
        request.url.path = "/api/validate"
        request.method = "POST"
        request.client.host = "10.0.0.1"

        logger = get_logger("paperform.test.context")
        with caplog.at_level(logging.INFO, logger="paperform.test.context"):
            log_with_context(logger, "info", "Form validated", request=request, form_id="form-1")

        record = caplog.records[-1]
        assert record.request_id == "abc12345"
        assert record.path == "/api/validate"
        assert record.method == "POST"
        assert record.client_ip == "10.0.0.1"
        assert record.form_id == "form-1"

    def test_without_request(self, caplog):
        logger = get_logger("paperform.test.context")
        with caplog.at_level(logging.WARNING, logger="paperform.test.context"):
            log_with_context(logger, "warning", "Ignored change", row=9)

        record = caplog.records[-1]
        assert record.levelname == "WARNING"
        assert record.row == 9

    def test_request_context_without_id_or_client(self):
        request = MagicMock(spec=Request)
        request.state = MagicMock(spec=[])
        request.url.path = "/health"
        request.method = "GET"
        request.client = None

        assert request_context(request) == {"method": "GET", "path": "/health"}
