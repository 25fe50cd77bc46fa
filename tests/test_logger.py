"""Tests for logger.py -- setup_logging() and JsonFormatter.

Strategy: mock logging.basicConfig to inspect the handlers passed to it,
since pytest's log capture plugin interferes with real basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from draftsync.logger import DEFAULT_MCP_LOG_FILE, JsonFormatter, setup_logging


def _close(handlers):
    for handler in handlers:
        handler.close()


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("draftsync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr

    @patch("draftsync.logger.logging.basicConfig")
    def test_mcp_mode_logs_to_file(self, mock_basic, tmp_path):
        """MCP mode never writes to stdout/stderr."""
        log_file = tmp_path / "mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)
        assert handlers[0].baseFilename == str(log_file)
        _close(handlers)

    @patch("draftsync.logger.logging.FileHandler")
    @patch("draftsync.logger.logging.basicConfig")
    def test_mcp_mode_default_log_file(self, _mock_basic, mock_handler, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        setup_logging(mode="mcp")
        mock_handler.assert_called_once_with(DEFAULT_MCP_LOG_FILE, mode="a")

    @patch("draftsync.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 2
        assert isinstance(handlers[1], logging.FileHandler)
        _close(handlers)

    @patch("draftsync.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("draftsync.logger.logging.basicConfig")
    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("draftsync.logger.logging.basicConfig")
    def test_default_levels(self, mock_basic, monkeypatch, tmp_path):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

        setup_logging(mode="mcp", log_file=str(tmp_path / "mcp.log"))
        assert mock_basic.call_args[1]["level"] == logging.WARNING
        _close(mock_basic.call_args[1]["handlers"])

    @patch("draftsync.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        handlers = mock_basic.call_args[1]["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    @patch("draftsync.logger.logging.basicConfig")
    def test_http_loggers_silenced(self, _mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("requests").level == logging.WARNING


class TestJsonFormatter:
    def _record(self, exc_info=None):
        return logging.LogRecord(
            name="draftsync.sync.engine",
            level=logging.ERROR if exc_info else logging.INFO,
            pathname="engine.py",
            lineno=1,
            msg="Synced %s",
            args=("doc-1",),
            exc_info=exc_info,
        )

    def test_basic_output(self):
        data = json.loads(JsonFormatter().format(self._record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "draftsync.sync.engine"
        assert data["msg"] == "Synced doc-1"
        assert "ts" in data
        assert "exc" not in data

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(self._record(exc_info)))
        assert "ValueError: boom" in data["exc"]
