"""Tests for ColoredFormatter."""

import logging
import sys
from io import StringIO
from unittest.mock import patch

import pytest

from discord_stream_player.utils.logging import ColoredFormatter

RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


def _make_record(level: int, message: str = "test") -> logging.LogRecord:
    return logging.LogRecord(
        name="discord_stream_player.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


def _tty_stream() -> StringIO:
    stream = StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]
    return stream


class TestColoredFormatter:
    """Tests for ANSI color formatting."""

    def _tty_formatter(self) -> ColoredFormatter:
        return ColoredFormatter("%(levelname)s | %(message)s", stream=_tty_stream())

    @pytest.mark.parametrize(
        "level",
        [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL],
    )
    def test_color_applied_per_level(self, level: int):
        """Should apply the correct ANSI color code for each level."""
        output = self._tty_formatter().format(_make_record(level))

        assert LEVEL_COLORS[level] in output
        assert RESET in output

    def test_no_color_when_no_color_env_set(self):
        """Should not apply colors when NO_COLOR env var is set."""
        fmt = self._tty_formatter()

        with patch.dict("os.environ", {"NO_COLOR": "1"}):
            output = fmt.format(_make_record(logging.INFO))

        assert "\033[" not in output

    def test_no_color_when_stream_not_tty(self):
        """Should not apply colors when the stream is not a TTY."""
        fmt = ColoredFormatter("%(levelname)s | %(message)s", stream=StringIO())

        assert "\033[" not in fmt.format(_make_record(logging.ERROR))

    def test_defaults_to_stderr(self):
        """Should consult sys.stderr when no stream was given."""
        fmt = ColoredFormatter("%(levelname)s")

        with patch.object(sys, "stderr", _tty_stream()), patch.dict("os.environ", clear=True):
            output = fmt.format(_make_record(logging.WARNING))

        assert LEVEL_COLORS[logging.WARNING] in output

    def test_accepts_dictconfig_style_kwargs(self):
        """Should accept the fmt/datefmt keywords logging.config passes to factories."""
        fmt = ColoredFormatter(fmt="%(asctime)s %(message)s", datefmt="%H:%M", stream=StringIO())

        output = fmt.format(_make_record(logging.INFO, "hello"))

        assert output.endswith("hello")

    def test_original_record_not_mutated(self):
        """Should not mutate the original LogRecord."""
        record = _make_record(logging.WARNING)

        self._tty_formatter().format(record)

        assert record.levelname == "WARNING"
