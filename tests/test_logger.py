"""Tests for logger module."""

import logging
from unittest.mock import patch

from warden.util.logger import (
    CONSOLE_LEVEL,
    DATE_FORMAT,
    LOG_FORMAT,
    ColorFormatter,
    get_logger,
    handle_exception,
    setup_logger,
    should_use_color,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="test_func",
    )


class TestShouldUseColor:
    @patch("sys.stderr.isatty")
    def test_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert should_use_color() is True

    @patch("sys.stderr.isatty")
    def test_no_tty(self, mock_isatty):
        mock_isatty.return_value = False
        assert should_use_color() is False

    @patch("sys.stderr.isatty")
    def test_exception(self, mock_isatty):
        mock_isatty.side_effect = Exception("Error")
        assert should_use_color() is False


class TestColorFormatter:
    def test_error_is_red(self):
        formatted = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT).format(_record(logging.ERROR, "Error message"))

        assert formatted.startswith("\033[31m")
        assert formatted.endswith("\033[0m")
        assert "Error message" in formatted

    def test_unknown_level_is_left_plain(self):
        formatted = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT).format(_record(5, "Trace message"))

        assert "\033[" not in formatted


class TestSetupLogger:
    def test_creates_configured_logger(self):
        logger = setup_logger("warden_test_logger_1")

        assert logger.name == "warden_test_logger_1"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 2
        assert logger.handlers[0].level == CONSOLE_LEVEL

    def test_repeated_setup_does_not_stack_handlers(self):
        first = get_logger("warden_test_logger_2")
        second = get_logger("warden_test_logger_2")

        assert first is second
        assert len(second.handlers) == 2


class TestHandleException:
    def test_keyboard_interrupt_goes_to_default_hook(self):
        with patch("sys.__excepthook__") as default_hook:
            handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)

        default_hook.assert_called_once()

    def test_other_exceptions_are_logged(self):
        with patch("logging.error") as log_error:
            handle_exception(ValueError, ValueError("bad"), None)

        log_error.assert_called_once()
