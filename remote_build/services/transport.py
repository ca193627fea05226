"""SSH transport session: one connection plus its SFTP channel.

Translates asyncssh and OS errors into ConnectionError and TransferError.
No retries happen here; the coordinator owns retry policy.
"""

import asyncio
import logging
import os
import posixpath
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import asyncssh

from remote_build.errors import (
    ConnectionError,
    ConnectionErrorKind,
    TransferError,
    TransferErrorKind,
)
from remote_build.events import OutputStream
from remote_build.models import CommandResult
from remote_build.utils.shell import sftp_path

if TYPE_CHECKING:
    from remote_build.models import ConnectionConfig
    from remote_build.protocols import OutputCallback

logger = logging.getLogger(__name__)


def classify_connect_error(error: Exception) -> ConnectionErrorKind:
    """Map an exception raised while connecting to a failure kind."""
    if isinstance(
        error,
        (asyncssh.PermissionDenied, asyncssh.KeyImportError, asyncssh.KeyEncryptionError),
    ):
        return ConnectionErrorKind.AUTH_REJECTED
    if isinstance(error, asyncssh.ConnectionLost):
        return ConnectionErrorKind.UNREACHABLE
    if isinstance(error, asyncssh.Error):
        return ConnectionErrorKind.PROTOCOL_MISMATCH
    return ConnectionErrorKind.UNREACHABLE


def classify_transfer_error(error: Exception) -> TransferErrorKind:
    """Map an exception raised while copying files to a failure kind."""
    if isinstance(error, (asyncssh.SFTPNoSuchFile, FileNotFoundError)):
        return TransferErrorKind.SOURCE_MISSING
    if isinstance(error, (asyncssh.SFTPPermissionDenied, PermissionError)):
        return TransferErrorKind.PERMISSION_DENIED
    return TransferErrorKind.IO_FAILURE


async def _pump(
    reader: Any,
    stream: OutputStream,
    captured: list[str],
    on_output: "OutputCallback | None",
) -> None:
    """Forward lines from one remote stream as they arrive."""
    async for line in reader:
        captured.append(line)
        if on_output is not None:
            on_output(stream, line.rstrip("\r\n"))


class SSHTransport:
    """One authenticated SSH session to the build host.

    Open with :meth:`open`; use as an async context manager or call
    :meth:`close` on every exit path.
    """

    def __init__(self, config: "ConnectionConfig", conn: asyncssh.SSHClientConnection):
        self.config = config
        self._conn = conn
        self._sftp: asyncssh.SFTPClient | None = None
        self._closed = False

    @classmethod
    async def open(
        cls,
        config: "ConnectionConfig",
        known_hosts: str | None = None,
        connect_timeout: float = 30,
    ) -> "SSHTransport":
        """Dial, handshake and authenticate.

        Args:
            config: Connection settings
            known_hosts: known_hosts path, or None to skip host key checks
            connect_timeout: Seconds allowed for dial and handshake

        Returns:
            Open transport

        Raises:
            ConnectionError: UNREACHABLE, AUTH_REJECTED or PROTOCOL_MISMATCH
        """
        if config.identity_file and not Path(config.identity_file).is_file():
            raise ConnectionError(
                ConnectionErrorKind.AUTH_REJECTED,
                config.host,
                FileNotFoundError(f"Identity file not found: {config.identity_file}"),
            )

        logger.info(
            "Opening SSH connection to %s (auth=%s)",
            config.address,
            "key" if config.uses_key else "password",
        )
        options: dict[str, Any] = {
            "port": config.port,
            "username": config.username,
            "known_hosts": known_hosts,
        }
        if config.identity_file:
            options["client_keys"] = [config.identity_file]
            options["passphrase"] = config.passphrase
        if config.password:
            options["password"] = config.password

        try:
            conn = await asyncio.wait_for(
                asyncssh.connect(config.host, **options),
                timeout=connect_timeout,
            )
        except (
            asyncssh.Error,
            asyncssh.KeyImportError,
            asyncssh.KeyEncryptionError,
            OSError,
            asyncio.TimeoutError,
        ) as e:
            kind = classify_connect_error(e)
            logger.error("SSH connection to %s failed (%s): %s", config.address, kind.value, e)
            raise ConnectionError(kind, config.host, e) from e

        logger.info("SSH connection established to %s", config.address)
        return cls(config, conn)

    async def __aenter__(self) -> "SSHTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def is_closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def _require_open(self) -> asyncssh.SSHClientConnection:
        if self._closed:
            raise RuntimeError("Transport session is closed")
        return self._conn

    async def run(
        self,
        command: str,
        on_output: "OutputCallback | None" = None,
    ) -> CommandResult:
        """Run a command in a fresh remote shell, streaming its output.

        Returns:
            CommandResult; non-zero exit is not an error. A process killed
            by a signal reports ``-signal``, an unknown status reports -1.

        Raises:
            ConnectionError: CONNECTION_LOST if the session drops
        """
        conn = self._require_open()
        stdout: list[str] = []
        stderr: list[str] = []
        started_at = time.monotonic()

        try:
            async with conn.create_process(
                command, stdin=asyncssh.DEVNULL, errors="replace"
            ) as process:
                await asyncio.gather(
                    _pump(process.stdout, OutputStream.STDOUT, stdout, on_output),
                    _pump(process.stderr, OutputStream.STDERR, stderr, on_output),
                )
                completed = await process.wait(check=False)
        except (asyncssh.Error, OSError) as e:
            logger.error("Connection to %s lost while running command: %s", self.config.host, e)
            raise ConnectionError(ConnectionErrorKind.CONNECTION_LOST, self.config.host, e) from e

        returncode = completed.returncode
        return CommandResult(
            command=command,
            exit_status=returncode if returncode is not None else -1,
            output="".join(stdout),
            error="".join(stderr),
            started_at=started_at,
            duration=time.monotonic() - started_at,
        )

    async def _sftp_client(self) -> asyncssh.SFTPClient:
        """Start the SFTP channel on first use."""
        conn = self._require_open()
        if self._sftp is None:
            try:
                self._sftp = await conn.start_sftp_client()
            except (asyncssh.Error, OSError) as e:
                raise TransferError(TransferErrorKind.IO_FAILURE, "<sftp>", e) from e
            logger.debug("SFTP channel started on %s", self.config.host)
        return self._sftp

    async def upload(self, local_path: str, remote_path: str) -> list[tuple[str, str]]:
        """Recursively copy a local file or directory to the remote host.

        Remote directories are created as needed and existing remote files
        are overwritten. Nothing is deleted. Symlinks are followed;
        dangling links and links back into an enclosing directory are
        skipped with a warning.

        Returns:
            (local, remote) path pairs of the files written

        Raises:
            TransferError: If the copy fails
        """
        source = Path(local_path)
        if not source.exists():
            raise TransferError(TransferErrorKind.SOURCE_MISSING, str(source))

        sftp = await self._sftp_client()
        target = sftp_path(remote_path)
        written: list[tuple[str, str]] = []
        current = str(source)

        try:
            if source.is_file():
                parent = posixpath.dirname(target)
                if parent:
                    await sftp.makedirs(parent, exist_ok=True)
                await sftp.put(current, target)
                written.append((current, target))
            else:
                await sftp.makedirs(target, exist_ok=True)
                # real paths of each walked directory and its ancestors
                lineage = {str(source): (os.path.realpath(source),)}
                for dirpath, dirnames, filenames in os.walk(source, followlinks=True):
                    relative = Path(dirpath).relative_to(source)
                    remote_dir = posixpath.join(target, *relative.parts)
                    kept = []
                    for name in sorted(dirnames):
                        current = os.path.join(dirpath, name)
                        real = os.path.realpath(current)
                        if real in lineage[dirpath]:
                            logger.warning("Skipping symlink loop %s -> %s", current, real)
                            continue
                        lineage[current] = lineage[dirpath] + (real,)
                        kept.append(name)
                        await sftp.makedirs(posixpath.join(remote_dir, name), exist_ok=True)
                    dirnames[:] = kept
                    for name in sorted(filenames):
                        current = os.path.join(dirpath, name)
                        if not os.path.exists(current):
                            logger.warning("Skipping dangling symlink %s", current)
                            continue
                        destination = posixpath.join(remote_dir, name)
                        await sftp.put(current, destination)
                        logger.debug("Uploaded %s -> %s", current, destination)
                        written.append((current, destination))
        except (asyncssh.Error, OSError) as e:
            raise TransferError(classify_transfer_error(e), current, e) from e

        logger.info("Uploaded %d file(s) to %s:%s", len(written), self.config.host, remote_path)
        return written

    async def download(self, remote_path: str, local_path: str) -> list[tuple[str, str]]:
        """Recursively copy a remote file or directory to the local machine.

        Local directories are created as needed and existing local files
        are overwritten. Nothing is deleted.

        Returns:
            (remote, local) path pairs of the files written

        Raises:
            TransferError: If the copy fails
        """
        sftp = await self._sftp_client()
        source = sftp_path(remote_path)
        destination = Path(local_path)
        written: list[tuple[str, str]] = []

        try:
            if not await sftp.exists(source):
                raise TransferError(TransferErrorKind.SOURCE_MISSING, remote_path)
            if await sftp.isdir(source):
                await self._download_tree(sftp, source, destination, written)
            else:
                destination.parent.mkdir(parents=True, exist_ok=True)
                await sftp.get(source, str(destination))
                written.append((source, str(destination)))
        except (asyncssh.Error, OSError) as e:
            raise TransferError(classify_transfer_error(e), remote_path, e) from e

        logger.info(
            "Downloaded %d file(s) from %s:%s", len(written), self.config.host, remote_path
        )
        return written

    async def _download_tree(
        self,
        sftp: asyncssh.SFTPClient,
        source: str,
        destination: Path,
        written: list[tuple[str, str]],
    ) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        for name in sorted(await sftp.listdir(source)):
            if name in (".", ".."):
                continue
            remote_child = posixpath.join(source, name)
            local_child = destination / name
            if await sftp.isdir(remote_child):
                await self._download_tree(sftp, remote_child, local_child, written)
            else:
                await sftp.get(remote_child, str(local_child))
                logger.debug("Downloaded %s -> %s", remote_child, local_child)
                written.append((remote_child, str(local_child)))

    async def close(self) -> None:
        """Close the SFTP channel and the connection. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._sftp is not None:
            self._sftp.exit()
            await self._sftp.wait_closed()
            self._sftp = None

        self._conn.close()
        await self._conn.wait_closed()
        logger.info("Closed SSH connection to %s", self.config.address)
