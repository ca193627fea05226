"""Utilities for remote builds."""

from remote_build.utils.console import ColorfulFormatter
from remote_build.utils.shell import (
    CWD_MARKER,
    parse_marker,
    quote_arg,
    quote_path,
    sftp_path,
    strip_marker,
    wrap_command,
)
from remote_build.utils.validation import PathTraversalError, validate_host, validate_path

__all__ = [
    "ColorfulFormatter",
    "CWD_MARKER",
    "PathTraversalError",
    "parse_marker",
    "quote_arg",
    "quote_path",
    "sftp_path",
    "strip_marker",
    "validate_host",
    "validate_path",
    "wrap_command",
]
