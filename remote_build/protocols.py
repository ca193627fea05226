"""Protocol interfaces for dependency inversion.

The coordinator and its components depend on these interfaces, not on
asyncssh. Tests pass in fakes that record calls.

Usage Example:

    from remote_build.protocols import TransportSession

    async def build(session: TransportSession) -> None:
        await session.upload("/src/project", "/srv/build/project")
        result = await session.run("make")

    # Real SSH session
    session = await SSHTransport.open(connection_config)

    # Or a fake that plays the remote host from a temp directory
    class FakeTransport:
        async def run(self, command, on_output=None):
            return CommandResult(command=command, exit_status=0)
        ...
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from remote_build.events import BuildEvent, OutputStream
from remote_build.models import CommandResult, ConnectionConfig

OutputCallback = Callable[[OutputStream, str], None]


@runtime_checkable
class TransportSession(Protocol):
    """Protocol for an open remote session.

    Implementations own one authenticated connection plus a file-transfer
    channel, and must release both on ``close()``.
    """

    async def run(
        self,
        command: str,
        on_output: OutputCallback | None = None,
    ) -> CommandResult:
        """Run a command in a fresh remote shell.

        Args:
            command: Shell command text
            on_output: Called with each output line as it arrives

        Returns:
            Result with exit status and captured output. A non-zero
            exit status is a normal result.

        Raises:
            ConnectionError: If the connection is lost while running
        """
        ...

    async def upload(self, local_path: str, remote_path: str) -> list[tuple[str, str]]:
        """Copy a local file or directory tree to the remote host.

        Returns:
            (local, remote) path pairs of the files written

        Raises:
            TransferError: If the copy fails
        """
        ...

    async def download(self, remote_path: str, local_path: str) -> list[tuple[str, str]]:
        """Copy a remote file or directory tree to the local machine.

        Returns:
            (remote, local) path pairs of the files written

        Raises:
            TransferError: If the copy fails
        """
        ...

    async def close(self) -> None:
        """Release the session. Safe to call more than once."""
        ...


@runtime_checkable
class EventSink(Protocol):
    """Protocol for receiving build progress events."""

    def emit(self, event: BuildEvent) -> None:
        """Handle one event. Must not raise."""
        ...


SessionOpener = Callable[[ConnectionConfig], Awaitable[TransportSession]]


__all__ = [
    "EventSink",
    "OutputCallback",
    "SessionOpener",
    "TransportSession",
]
