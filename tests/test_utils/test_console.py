"""Tests for the colorful log formatter."""

import logging

from remote_build.utils.console import ColorfulFormatter


def _record(name: str, msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_plain_format_strips_package_prefix():
    """Without colors the line is plain text with a short component name."""
    formatter = ColorfulFormatter(use_colors=False)

    line = formatter.format(_record("remote_build.services.transport", "Opening builder@h:22"))

    assert "\033[" not in line
    assert "INFO" in line
    assert "services.transport" in line
    assert "remote_build.services" not in line
    assert line.endswith("Opening builder@h:22")


def test_colored_format_highlights_address():
    """SSH addresses are highlighted when colors are on."""
    formatter = ColorfulFormatter(use_colors=True)

    line = formatter.format(_record("remote_build.services.transport", "Opening builder@h:22"))

    assert "\033[95mbuilder@h:22" in line
