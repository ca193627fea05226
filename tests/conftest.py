"""Shared fixtures: a spy transport that plays the remote host from a temp dir."""

import logging
import shlex
import shutil
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import asyncssh
import pytest

from remote_build.errors import (
    ConnectionError,
    ConnectionErrorKind,
    TransferError,
    TransferErrorKind,
)
from remote_build.events import OutputStream
from remote_build.models import (
    BuildConfig,
    CommandResult,
    CommandSpec,
    CompilationConfig,
    ConnectionConfig,
)
from remote_build.utils.shell import CWD_MARKER

REMOTE_ROOT = "/srv/build/project"


def unwrap(script: str) -> tuple[str | None, str]:
    """Recover (cwd, command) from a script built by wrap_command."""
    lines = script.split("\n")
    cwd = None
    if lines[0].startswith("cd ") and lines[0].endswith(" || exit $?"):
        cwd = shlex.split(lines[0][len("cd "):-len(" || exit $?")])[0]
        lines = lines[1:]
    return cwd, "\n".join(lines[:-3])


class FakeTransport:
    """Spy TransportSession backed by a local directory.

    Remote absolute paths map under ``remote_dir``. ``run`` understands a
    tiny command language: ``exit N``, ``echo TEXT``, ``warn TEXT``
    (stderr), ``cd DIR``, ``touch REL`` and ``pwd``; anything else
    succeeds silently.
    """

    def __init__(self, remote_dir: Path):
        self.remote_dir = remote_dir
        self.calls: list[str] = []
        self.executed: list[tuple[str | None, str]] = []
        self.closed = False
        self.close_count = 0
        self.upload_errors: list[Exception] = []
        self.download_errors: list[Exception] = []
        self.run_error: Exception | None = None

    def local(self, remote_path: str) -> Path:
        relative = remote_path.lstrip("~").lstrip("/")
        return self.remote_dir / relative if relative else self.remote_dir

    async def run(self, command: str, on_output: Any = None) -> CommandResult:
        self.calls.append("run")
        if self.run_error is not None:
            raise self.run_error
        started_at = time.monotonic()
        cwd, user_command = unwrap(command)
        self.executed.append((cwd, user_command))

        stdout: list[str] = []
        stderr: list[str] = []

        def out(line: str) -> None:
            stdout.append(line + "\n")
            if on_output:
                on_output(OutputStream.STDOUT, line)

        def err(line: str) -> None:
            stderr.append(line + "\n")
            if on_output:
                on_output(OutputStream.STDERR, line)

        status = None
        current = cwd or "/home/builder"
        for line in user_command.splitlines():
            verb, _, arg = line.strip().partition(" ")
            if verb == "exit":
                status = int(arg or 0)
                break
            if verb == "echo":
                out(arg)
            elif verb == "warn":
                err(arg)
            elif verb == "pwd":
                out(current)
            elif verb == "cd":
                current = arg if arg.startswith("/") else f"{current.rstrip('/')}/{arg}"
            elif verb == "touch":
                target = self.local(f"{current}/{arg}")
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(f"built {arg}\n")

        if status is None:
            status = 0
            out("")
            out(f"{CWD_MARKER}{current}")

        return CommandResult(
            command=command,
            exit_status=status,
            output="".join(stdout),
            error="".join(stderr),
            started_at=started_at,
            duration=time.monotonic() - started_at,
        )

    async def upload(self, local_path: str, remote_path: str) -> list[tuple[str, str]]:
        self.calls.append("upload")
        if self.upload_errors:
            raise self.upload_errors.pop(0)
        return _copy_tree(Path(local_path), self.local(remote_path), remote_path)

    async def download(self, remote_path: str, local_path: str) -> list[tuple[str, str]]:
        self.calls.append("download")
        if self.download_errors:
            raise self.download_errors.pop(0)
        source = self.local(remote_path)
        if not source.exists():
            raise TransferError(TransferErrorKind.SOURCE_MISSING, remote_path)
        return _copy_tree(source, Path(local_path), local_path)

    async def close(self) -> None:
        self.close_count += 1
        self.closed = True


def _copy_tree(source: Path, destination: Path, label: str) -> list[tuple[str, str]]:
    if not source.exists():
        raise TransferError(TransferErrorKind.SOURCE_MISSING, str(source))
    if source.is_file():
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        return [(str(source), label)]
    pairs = []
    for path in sorted(source.rglob("*")):
        target = destination / path.relative_to(source)
        if path.is_dir():
            target.mkdir(parents=True, exist_ok=True)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
            pairs.append((str(path), f"{label}/{path.relative_to(source).as_posix()}"))
    destination.mkdir(parents=True, exist_ok=True)
    return pairs


class LocalSFTP:
    """Stand-in for asyncssh.SFTPClient rooted at a local directory."""

    def __init__(self, root: Path):
        self.root = root
        self.exited = False

    def _path(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    async def makedirs(self, path: str, exist_ok: bool = False) -> None:
        target = self._path(path)
        if target.exists() and not target.is_dir():
            raise asyncssh.SFTPFailure(f"Not a directory: {path}")
        target.mkdir(parents=True, exist_ok=exist_ok)

    async def put(self, local: str, remote: str) -> None:
        target = self._path(remote)
        if not target.parent.is_dir():
            raise asyncssh.SFTPNoSuchFile(f"No such directory: {remote}")
        shutil.copyfile(local, target)

    async def get(self, remote: str, local: str) -> None:
        source = self._path(remote)
        if not source.is_file():
            raise asyncssh.SFTPNoSuchFile(f"No such file: {remote}")
        shutil.copyfile(source, local)

    async def exists(self, path: str) -> bool:
        return self._path(path).exists()

    async def isdir(self, path: str) -> bool:
        return self._path(path).is_dir()

    async def listdir(self, path: str) -> list[str]:
        source = self._path(path)
        if not source.is_dir():
            raise asyncssh.SFTPNoSuchFile(f"No such directory: {path}")
        return [".", "..", *(child.name for child in source.iterdir())]

    def exit(self) -> None:
        self.exited = True

    async def wait_closed(self) -> None:
        pass


@pytest.fixture
def remote_dir(tmp_path: Path) -> Path:
    """Directory playing the remote filesystem."""
    path = tmp_path / "remote"
    path.mkdir()
    return path


@pytest.fixture
def fake_transport(remote_dir: Path) -> FakeTransport:
    """Spy transport session."""
    return FakeTransport(remote_dir)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Local project tree with nested files."""
    root = tmp_path / "project"
    (root / "src" / "nested").mkdir(parents=True)
    (root / "Cargo.toml").write_text('[package]\nname = "demo"\n')
    (root / "src" / "main.rs").write_text('fn main() { println!("hi"); }\n')
    (root / "src" / "nested" / "lib.rs").write_text("pub fn f() {}\n")
    return root


@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Password-authenticated connection settings."""
    return ConnectionConfig(host="build.example.com", username="builder", password="secret")


@pytest.fixture
def make_build(project: Path, connection_config: ConnectionConfig) -> Callable[..., BuildConfig]:
    """Factory for BuildConfig with the given commands."""

    def factory(*commands: CommandSpec, output_directory: str = "target/release") -> BuildConfig:
        return BuildConfig(
            ssh=connection_config,
            compilation=CompilationConfig(
                local_project_root=project,
                remote_project_root=REMOTE_ROOT,
                output_directory=output_directory,
            ),
            commands=tuple(commands),
        )

    return factory


@pytest.fixture
def make_opener(fake_transport: FakeTransport) -> Callable[..., Any]:
    """Factory for session openers returning the spy transport.

    ``errors`` are raised by successive open attempts before succeeding.
    """

    def factory(*errors: Exception) -> Any:
        pending = list(errors)

        async def opener(config: ConnectionConfig) -> FakeTransport:
            fake_transport.calls.append("open")
            if pending:
                raise pending.pop(0)
            return fake_transport

        return opener

    return factory


@pytest.fixture
def unreachable() -> ConnectionError:
    """Connection failure for a host that cannot be dialed."""
    return ConnectionError(
        ConnectionErrorKind.UNREACHABLE,
        "build.example.com",
        OSError("Connection refused"),
    )


@pytest.fixture(autouse=True)
def restore_package_logger() -> Any:
    """Undo CLI logging setup so caplog keeps seeing package records."""
    package_logger = logging.getLogger("remote_build")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


@pytest.fixture
def local_sftp(remote_dir: Path) -> LocalSFTP:
    """SFTP client fake over the remote directory."""
    return LocalSFTP(remote_dir)
