"""
Test Logging Module
===================

Unit tests for formatters and the logging context.
"""

import json
import logging

from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.logging import (
    ColoredFormatter, ContextFilter, JSONFormatter, PlainFormatter, clear_log_context,
    get_logger, record_fields, set_log_context
)


def make_record(msg="hello"):
    return logging.LogRecord("simple_bot.test", logging.ERROR, __file__, 1, msg, None, None)


class TestLogging:
    """Tests for logging helpers."""

    def test_logger_namespace(self):
        assert get_logger("services.bot").logger.name == "simple_bot.services.bot"
        assert get_logger("simple_bot.x").logger.name == "simple_bot.x"

    def test_json_formatter(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["message"] == "hello"
        assert data["level"] == "ERROR"

    def test_context_is_attached(self):
        """Test thread-local context ends up in JSON output."""
        set_log_context(sender="alice")
        try:
            record = make_record()
            assert ContextFilter().filter(record)
        finally:
            clear_log_context()

        data = json.loads(JSONFormatter().format(record))
        assert data["data"] == {"sender": "alice"}

    def test_cleared_context(self):
        set_log_context(sender="alice")
        clear_log_context()
        record = make_record()
        ContextFilter().filter(record)
        assert not hasattr(record, "extra_data")


class TestStructuredFields:
    """Tests for fields passed with ``extra={...}``."""

    def make_record_with_fields(self):
        record = make_record("Ignored message because of rate limiting")
        record.sender = "alice"
        record.text = "ping"
        return record

    def test_record_fields(self):
        assert record_fields(self.make_record_with_fields()) == {"sender": "alice", "text": "ping"}
        assert record_fields(make_record()) == {}

    def test_json_fields(self):
        data = json.loads(JSONFormatter().format(self.make_record_with_fields()))
        assert data["fields"] == {"sender": "alice", "text": "ping"}

    def test_plain_fields(self):
        line = PlainFormatter().format(self.make_record_with_fields())
        assert line.endswith("| sender='alice' text='ping'")

    def test_colored_fields(self):
        line = ColoredFormatter().format(self.make_record_with_fields())
        assert "sender='alice' text='ping'" in line

    def test_adapter_passes_fields(self):
        """Test fields given to a module logger reach the handler."""
        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Collect()
        logger = get_logger("tests.fields")
        logger.logger.addHandler(handler)
        logger.logger.setLevel(logging.DEBUG)
        try:
            logger.debug("Removed dynamic actions", extra={"trigger": "hello", "count": 2})
        finally:
            logger.logger.removeHandler(handler)

        assert record_fields(records[0]) == {"trigger": "hello", "count": 2}
