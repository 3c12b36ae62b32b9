"""Tests for the logger module."""

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from merrive_portal.core.config import Environment
from merrive_portal.core.logger import (
    LOG_FILE_NAME,
    InterceptHandler,
    configure_http_logging,
    correlation_filter,
    mask_token,
    new_request_id,
    request_id_var,
    setup_logger,
    shutdown_logger,
)


class TestMaskToken:
    """Tests for mask_token function."""

    def test_keeps_prefix_only(self):
        assert mask_token("eyJhbGciOiJIUzI1NiJ9.payload.signature") == "eyJhbG..."

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, token):
        assert mask_token(token) == "<none>"


class TestCorrelationFilter:
    """Tests for correlation_filter function."""

    def test_adds_request_id(self):
        """Test the current request id is added to the record."""
        record = {"extra": {}}
        token = request_id_var.set("ab12cd34")
        try:
            result = correlation_filter(record)  # type: ignore[arg-type]
        finally:
            request_id_var.reset(token)

        assert result is True
        assert record["extra"]["request_id"] == "ab12cd34"
        assert isinstance(record["extra"]["process_id"], int)

    def test_placeholder_without_request_id(self):
        record = {"extra": {}}

        correlation_filter(record)  # type: ignore[arg-type]

        assert record["extra"]["request_id"] == "-"

    def test_new_request_id_is_short(self):
        assert len(new_request_id()) == 8
        assert new_request_id() != new_request_id()


class TestInterceptHandler:
    """Tests for InterceptHandler class."""

    def test_emit_forwards_to_loguru(self):
        handler = InterceptHandler()
        record = logging.LogRecord(
            name="httpx",
            level=logging.INFO,
            pathname="client.py",
            lineno=1,
            msg="HTTP Request: GET %s",
            args=("https://api.test/projects",),
            exc_info=None,
        )

        with patch("merrive_portal.core.logger.logger") as mock_logger:
            mock_logger.level.return_value.name = "INFO"
            handler.emit(record)

        mock_logger.opt.return_value.log.assert_called_once_with(
            "INFO", "HTTP Request: GET https://api.test/projects"
        )

    def test_emit_unknown_level_uses_number(self):
        handler = InterceptHandler()
        record = logging.LogRecord(
            name="httpcore",
            level=15,
            pathname="conn.py",
            lineno=1,
            msg="custom",
            args=(),
            exc_info=None,
        )

        with patch("merrive_portal.core.logger.logger") as mock_logger:
            mock_logger.level.side_effect = ValueError("unknown level")
            handler.emit(record)

        mock_logger.opt.return_value.log.assert_called_once_with(15, "custom")


class TestSetupLogger:
    """Tests for setup_logger function."""

    def make_settings(self, log_dir: Path, log_to_file: bool) -> MagicMock:
        mock_settings = MagicMock()
        mock_settings.log_level = logging.INFO
        mock_settings.log_to_file = log_to_file
        mock_settings.log_dir = log_dir
        mock_settings.current_environment = Environment.LOCAL
        return mock_settings

    def test_console_only(self, tmp_path: Path):
        mock_settings = self.make_settings(tmp_path / "logs", log_to_file=False)

        with (
            patch("merrive_portal.core.logger.settings", mock_settings),
            patch("merrive_portal.core.logger.logger") as mock_logger,
        ):
            setup_logger()

        mock_logger.remove.assert_called_once()
        assert mock_logger.add.call_count == 1
        assert not (tmp_path / "logs").exists()

    def test_file_sink(self, tmp_path: Path):
        """Test the rotating file sink is added and its directory created."""
        log_dir = tmp_path / "logs"
        mock_settings = self.make_settings(log_dir, log_to_file=True)

        with (
            patch("merrive_portal.core.logger.settings", mock_settings),
            patch("merrive_portal.core.logger.logger") as mock_logger,
        ):
            setup_logger()

        assert mock_logger.add.call_count == 2
        file_call = mock_logger.add.call_args_list[1]
        assert file_call.args[0] == log_dir / LOG_FILE_NAME
        assert file_call.kwargs["rotation"] == "10 MB"
        assert file_call.kwargs["diagnose"] is False
        assert log_dir.is_dir()

    def test_http_loggers_are_intercepted(self):
        configure_http_logging()

        for name in ("httpx", "httpcore"):
            std_logger = logging.getLogger(name)
            assert len(std_logger.handlers) == 1
            assert isinstance(std_logger.handlers[0], InterceptHandler)
            assert std_logger.propagate is False

    def test_shutdown_logger_flushes(self):
        with patch("merrive_portal.core.logger.logger") as mock_logger:
            shutdown_logger()

        mock_logger.complete.assert_called_once()
