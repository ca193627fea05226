"""Error taxonomy for remote builds.

Every failure a run can end in is one of these exceptions. Library errors
(asyncssh, OSError, tomllib) are translated at the component boundary that
first sees them and chained with ``raise ... from``.
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from remote_build.models import Phase


class RemoteBuildError(Exception):
    """Base class for all remote build failures."""


class ConnectionErrorKind(Enum):
    """Why an SSH session could not be used."""

    UNREACHABLE = "unreachable"
    AUTH_REJECTED = "auth_rejected"
    PROTOCOL_MISMATCH = "protocol_mismatch"
    CONNECTION_LOST = "connection_lost"


class ConnectionError(RemoteBuildError):
    """SSH session could not be established or was lost."""

    def __init__(
        self,
        kind: ConnectionErrorKind,
        host: str,
        original_error: Exception | None = None,
    ):
        """Initialize connection error.

        Args:
            kind: Failure category
            host: Host the session was for
            original_error: Underlying library exception, if any
        """
        self.kind = kind
        self.host = host
        self.original_error = original_error
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Cannot use SSH session to {host} ({kind.value}){detail}")

    @property
    def is_transient(self) -> bool:
        """Whether a later attempt could plausibly succeed."""
        return self.kind in (ConnectionErrorKind.UNREACHABLE, ConnectionErrorKind.CONNECTION_LOST)


class TransferErrorKind(Enum):
    """Why a file transfer failed."""

    SOURCE_MISSING = "source_missing"
    PERMISSION_DENIED = "permission_denied"
    IO_FAILURE = "io_failure"


class TransferError(RemoteBuildError):
    """Recursive upload or download failed."""

    def __init__(
        self,
        kind: TransferErrorKind,
        path: str,
        original_error: Exception | None = None,
    ):
        self.kind = kind
        self.path = path
        self.original_error = original_error
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Transfer of {path} failed ({kind.value}){detail}")

    @property
    def is_transient(self) -> bool:
        """Whether a later attempt could plausibly succeed."""
        return self.kind is TransferErrorKind.IO_FAILURE


class CommandFailure(RemoteBuildError):
    """A configured build command exited with a non-zero status."""

    def __init__(
        self,
        phase: "Phase",
        index: int,
        description: str,
        exit_status: int,
        partial_output: str = "",
    ):
        """Initialize command failure.

        Args:
            phase: Phase the command belongs to
            index: 0-based position of the command within its phase
            description: Human-readable description from the build file
            exit_status: Remote exit status
            partial_output: Output captured before the command exited
        """
        self.phase = phase
        self.index = index
        self.description = description
        self.exit_status = exit_status
        self.partial_output = partial_output
        super().__init__(
            f"{phase.label} command #{index} ({description}) "
            f"exited with status {exit_status}"
        )


class ConfigurationError(RemoteBuildError):
    """Build file or settings are invalid."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        prefix = f"{key}: " if key else ""
        super().__init__(f"{prefix}{message}")


class BuildCancelled(RemoteBuildError):
    """The run was cancelled between commands or phases."""

    def __init__(self, message: str = "Build cancelled"):
        super().__init__(message)
