"""Path and host validation utilities."""

import posixpath
import re
from typing import Final


class PathTraversalError(ValueError):
    """Path escapes the directory it is supposed to stay under."""

    pass


# Traversal sequences rejected before normalization
TRAVERSAL_PATTERNS: Final[list[str]] = [
    r"\.\./",  # ../
    r"/\.\.$",  # trailing /..
    r"^\.\.$",  # Just ..
]

# Characters that have no place in a host name and could reach a shell
SUSPICIOUS_HOST_CHARS: Final[tuple[str, ...]] = (
    "/", "\\", ";", "&", "|", "$", "`", " ", "\n", "\r", "\x00",
)


def validate_path(path: str, allow_absolute: bool = True) -> str:
    """Validate a path that is joined under a project root.

    The same relative path is used on the local and the remote side, so
    it is checked and normalized with POSIX semantics.

    Args:
        path: The path to validate
        allow_absolute: Whether to allow absolute paths (default: True)

    Returns:
        Normalized path

    Raises:
        PathTraversalError: If path contains traversal sequences
        ValueError: If path is empty, contains NUL, or is absolute when
            that is not allowed
    """
    if not path:
        raise ValueError("Path cannot be empty")

    if "\x00" in path:
        raise ValueError(f"Path contains null byte: {path!r}")

    for pattern in TRAVERSAL_PATTERNS:
        if re.search(pattern, path):
            raise PathTraversalError(f"Path traversal not allowed: {path}")

    normalized = posixpath.normpath(path)

    if normalized.startswith(".."):
        raise PathTraversalError(f"Path escapes root after normalization: {path}")

    if not allow_absolute and (posixpath.isabs(normalized) or path.startswith("~")):
        raise ValueError(f"Absolute paths not allowed: {path}")

    return normalized


def validate_host(host: str) -> str:
    """Validate a host name or address.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    for char in SUSPICIOUS_HOST_CHARS:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host
