"""Tests for logging configuration."""

import json
import logging
import sys

from exa_websets.app.core import logging as logging_module
from exa_websets.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logging_config,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("exa_websets.test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test structured JSON output."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "exa_websets.test"

    def test_context_fields(self):
        data = json.loads(JSONFormatter().format(_record(request_id="r-1", tool="websets_list", attempt=2)))

        assert data["request_id"] == "r-1"
        assert data["tool"] == "websets_list"
        assert data["attempt"] == 2


class TestContextFilter:

    def test_fills_missing_fields(self):
        record = _record()
        assert ContextFilter().filter(record) is True
        assert hasattr(record, "request_id")
        assert hasattr(record, "error_kind")


class TestLoggingConfig:
    """Test dictConfig generation."""

    def test_logs_to_stderr(self, monkeypatch):
        monkeypatch.setattr(logging_module.settings, "log_format", "text")
        config = get_logging_config()

        handler = config["handlers"]["stderr"]
        assert handler["stream"] is sys.stderr
        assert handler["formatter"] == "text"
        assert config["loggers"]["exa_websets"]["propagate"] is False

    def test_json_format(self, monkeypatch):
        monkeypatch.setattr(logging_module.settings, "log_format", "json")
        config = get_logging_config()

        assert config["handlers"]["stderr"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"].endswith("JSONFormatter")


class TestLogContext:

    def test_drops_none_values(self):
        assert get_log_context(request_id="r-1", tool=None, path="/websets", attempt=None) == {
            "request_id": "r-1",
            "path": "/websets",
        }
