"""
Unit tests for structured logging configuration, including JSON formatting,
console formatting, context logging and environment-based configuration.
"""

import json
import logging
import logging.handlers
import sys
from unittest.mock import patch

import pytest

from diff_inspector.utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    configure_from_env,
    setup_logging,
)

pytestmark = pytest.mark.usefixtures("restore_logging")


def make_record(msg="Table compared", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="diff_inspector.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSONFormatter class"""

    def test_defaults(self):
        formatter = JSONFormatter()

        assert formatter.include_timestamp is True
        assert formatter.app_name == "pg-diff-inspector"
        assert formatter.hostname is not None

    def test_format_with_context(self):
        formatter = JSONFormatter(include_hostname=False)

        data = json.loads(formatter.format(make_record(table="users", missing=3)))

        assert data["level"] == "INFO"
        assert data["message"] == "Table compared"
        assert data["app"] == "pg-diff-inspector"
        assert data["context"] == {"table": "users", "missing": 3}
        assert "timestamp" in data
        assert "hostname" not in data

    def test_format_exception(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("bad batch")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(formatter.format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad batch"


class TestConsoleFormatter:
    """Test ConsoleFormatter class"""

    def test_context_is_appended(self):
        formatter = ConsoleFormatter(use_colors=False)

        text = formatter.format(make_record(table="users"))

        assert "[INFO] diff_inspector.test: Table compared" in text
        assert text.endswith("[table=users]")

    def test_levelname_is_restored(self):
        formatter = ConsoleFormatter(use_colors=True)
        formatter.use_colors = True
        record = make_record()

        formatter.format(record)

        assert record.levelname == "INFO"


class TestContextLogger:
    """Test ContextLogger class"""

    def test_context_reaches_record(self, caplog):
        logger = ContextLogger("diff_inspector.extract", table="users", side="source")

        with caplog.at_level(logging.INFO, logger="diff_inspector.extract"):
            logger.info("Fetched batch", offset=100)

        record = caplog.records[-1]
        assert record.table == "users"
        assert record.side == "source"
        assert record.offset == 100

    def test_error_carries_exception(self, caplog):
        logger = ContextLogger("diff_inspector.extract", table="users")

        with caplog.at_level(logging.ERROR, logger="diff_inspector.extract"):
            try:
                raise RuntimeError("timeout")
            except RuntimeError:
                logger.error("Batch failed", exc_info=True, offset=0)

        record = caplog.records[-1]
        assert record.exc_info[0] is RuntimeError
        assert record.table == "users"


class TestSetupLogging:
    """Test setup_logging and configure_from_env"""

    def test_level_and_console_handler(self):
        setup_logging(level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, ConsoleFormatter) for h in root.handlers)

    def test_json_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "pdi.log"

        setup_logging(log_file=str(log_file), console_output=False, json_format=True)
        logging.getLogger("diff_inspector.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        handlers = [
            h for h in logging.getLogger().handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(handlers) == 1
        assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "hello"

    def test_noisy_loggers_are_quieted(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_configure_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_JSON", "true")
        monkeypatch.delenv("LOG_CONSOLE", raising=False)
        monkeypatch.delenv("LOG_FILE", raising=False)

        with patch("diff_inspector.utils.logging.config.setup_logging") as mock_setup:
            configure_from_env()

        kwargs = mock_setup.call_args.kwargs
        assert kwargs["level"] == "WARNING"
        assert kwargs["json_format"] is True
        assert kwargs["console_output"] is True

    def test_arguments_override_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "env.log"))

        with patch("diff_inspector.utils.logging.config.setup_logging") as mock_setup:
            configure_from_env(level="DEBUG", json_format=True)

        kwargs = mock_setup.call_args.kwargs
        assert kwargs["level"] == "DEBUG"
        assert kwargs["log_file"] == str(tmp_path / "env.log")
        assert kwargs["json_format"] is True
