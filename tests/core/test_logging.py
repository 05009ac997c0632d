"""Tests for structured logging."""

import json
import logging

from toolsmith.core.logging import (
    JSONFormatter,
    TextFormatter,
    configure_logging,
    get_logger,
)


def _record(msg="Test message", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="/srv/toolsmith/test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_format_basic_message(self):
        """Basic message is formatted as JSON."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data

    def test_format_includes_location(self):
        """JSON includes file location."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["location"]["file"] == "/srv/toolsmith/test.py"
        assert data["location"]["line"] == 10

    def test_format_with_extra_fields(self):
        """Extra fields (analytics events) are carried through."""
        record = _record(event="deployed", properties={"slug": "resume-builder"})

        data = json.loads(JSONFormatter().format(record))

        assert data["event"] == "deployed"
        assert data["properties"] == {"slug": "resume-builder"}

    def test_format_with_exception(self):
        """JSON includes exception info."""
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in data["exception"]


class TestTextFormatter:

    def test_format_is_pipe_separated(self):
        """Text output carries level, logger and message."""
        output = TextFormatter().format(_record())

        assert "| INFO" in output
        assert "| test |" in output
        assert output.endswith("Test message")


class TestConfigureLogging:

    def test_json_format_installs_json_formatter(self):
        configure_logging(level="DEBUG", format_type="json")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_noisy_libraries_are_quieted(self):
        configure_logging(level="DEBUG", format_type="text")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_get_logger_returns_named_logger(self):
        assert get_logger("toolsmith.test").name == "toolsmith.test"
