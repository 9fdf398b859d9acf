"""
Tests for logging configuration module.
"""

import logging

import pytest

from unvm.common import vlog
from unvm.logging_config import ColoredFormatter, get_logger, setup_logging


def _record(level, msg="Test message"):
    return logging.LogRecord(
        name="unvm.test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestSetupLogging:
    """Test logging setup and configuration."""

    def test_setup_logging_default(self):
        """Test default logging setup."""
        logger = setup_logging()
        assert logger.name == "unvm"
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_setup_logging_verbose(self):
        """Test verbose logging enables DEBUG level."""
        assert setup_logging(verbose=True).level == logging.DEBUG

    def test_setup_logging_quiet(self):
        """Test quiet mode only shows warnings and errors."""
        logger = setup_logging(quiet=True)
        assert logger.level == logging.WARNING
        console = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]
        assert [h.level for h in console] == [logging.WARNING]

    def test_setup_logging_replaces_handlers(self):
        """Repeated setup does not stack handlers."""
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging to file, creating the directory."""
        log_file = tmp_path / "logs" / "unvm.log"
        logger = setup_logging(log_file=str(log_file), quiet=True)

        logging.getLogger("unvm.switch").debug("resolved v20.11.0")
        for handler in logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "[DEBUG] unvm.switch: resolved v20.11.0" in content


class TestGetLogger:
    """Test logger retrieval."""

    def test_get_logger_singleton(self):
        """Test get_logger returns same instance."""
        assert get_logger() is get_logger()
        assert get_logger().name == "unvm"


class TestColoredFormatter:
    """Test colored log formatter."""

    def test_info_is_bare(self):
        """INFO lines carry no prefix."""
        formatter = ColoredFormatter("%(message_colored)s", use_colors=False)
        assert formatter.format(_record(logging.INFO)) == "Test message"

    @pytest.mark.parametrize("level,prefix", [
        (logging.DEBUG, "debug: "),
        (logging.WARNING, "warning: "),
        (logging.ERROR, "error: "),
        (logging.CRITICAL, "error: "),
    ])
    def test_prefixes(self, level, prefix):
        """Other levels are prefixed."""
        formatter = ColoredFormatter("%(message_colored)s", use_colors=False)
        assert formatter.format(_record(level)) == f"{prefix}Test message"

    def test_colors(self):
        """Colored output wraps the line in ANSI codes."""
        formatter = ColoredFormatter("%(message_colored)s", use_colors=True)
        formatted = formatter.format(_record(logging.WARNING))
        assert formatted.startswith("\033[33m")
        assert formatted.endswith("\033[0m")


class TestVlog:
    """vlog integration."""

    def test_vlog_verbose(self, caplog):
        """vlog logs at debug when verbose."""
        setup_logging(level="DEBUG", propagate=True)
        with caplog.at_level(logging.DEBUG, logger="unvm"):
            vlog("Test vlog message", verbose=True)
        assert "Test vlog message" in caplog.text

    def test_vlog_quiet(self, caplog):
        """vlog is silent unless verbose."""
        setup_logging(level="DEBUG", propagate=True)
        with caplog.at_level(logging.DEBUG, logger="unvm"):
            vlog("Should not appear", verbose=False)
        assert "Should not appear" not in caplog.text

    def test_vlog_debug_env(self, caplog, monkeypatch):
        """UNVM_DEBUG=1 forces vlog output."""
        monkeypatch.setenv("UNVM_DEBUG", "1")
        setup_logging(level="DEBUG", propagate=True)
        with caplog.at_level(logging.DEBUG, logger="unvm"):
            vlog("forced", verbose=False)
        assert "forced" in caplog.text
