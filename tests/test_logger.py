"""
Tests for log line sanitization and format validation.
"""

import logging

from tracerpc.constants import LOG_DATE_FORMAT, LOG_FORMAT
from tracerpc.logger import LogManager, TerminalSafeFormatter, get_logger


class TestTerminalSafeFormatter:
    def test_strips_ansi(self):
        assert TerminalSafeFormatter.sanitize("\x1b[31mred\x1b[0m") == "red"

    def test_strips_control_chars(self):
        assert TerminalSafeFormatter.sanitize("a\x00b\rc\x07") == "abc"

    def test_keeps_tabs_and_newlines(self):
        assert TerminalSafeFormatter.sanitize("a\tb\nc") == "a\tb\nc"

    def test_format_sanitizes_params(self):
        formatter = TerminalSafeFormatter(fmt="%(message)s")
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg='rpc method=trace_block params=["\x1b[2J0x1"]', args=(), exc_info=None,
        )
        assert formatter.format(record) == 'rpc method=trace_block params=["0x1"]'


class TestLogManager:
    def test_singleton(self):
        assert LogManager() is LogManager()
        assert LogManager().is_configured

    def test_invalid_format_falls_back(self):
        assert LogManager.validate_log_format("%(nope)s") == str(LOG_FORMAT.default())

    def test_invalid_date_format_falls_back(self):
        assert LogManager.validate_date_format("not a date") == str(LOG_DATE_FORMAT.default())

    def test_valid_date_format(self):
        assert LogManager.validate_date_format("%Y-%m-%d %H:%M:%S") == "%Y-%m-%d %H:%M:%S"

    def test_get_logger(self):
        assert get_logger("tracerpc.test").name == "tracerpc.test"
