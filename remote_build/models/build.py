"""Build configuration data models."""

import os
import posixpath
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from remote_build.errors import ConfigurationError
from remote_build.models.ssh import ConnectionConfig
from remote_build.utils.validation import PathTraversalError, validate_path


class Phase(Enum):
    """Command phase, selected by ``execute_after_compilation``."""

    PRE_COMPILATION = "pre"
    POST_COMPILATION = "post"

    @classmethod
    def of(cls, spec: "CommandSpec") -> "Phase":
        """Return the phase a command belongs to."""
        return cls.POST_COMPILATION if spec.execute_after_compilation else cls.PRE_COMPILATION

    @property
    def label(self) -> str:
        """Human-readable phase name."""
        return "pre-compilation" if self is Phase.PRE_COMPILATION else "post-compilation"


@dataclass(frozen=True)
class CommandSpec:
    """One configured build command."""

    command: str
    description: str = ""
    execute_after_compilation: bool = False

    def __post_init__(self) -> None:
        if not self.command.strip():
            raise ConfigurationError("Command cannot be empty", key="commands.command")

    @property
    def phase(self) -> Phase:
        """Phase this command runs in."""
        return Phase.of(self)


@dataclass(frozen=True)
class CompilationConfig:
    """Where the project lives on both sides and where its output lands.

    ``output_directory`` is relative and is interpreted identically under
    both project roots.
    """

    local_project_root: Path
    remote_project_root: str
    output_directory: str

    def __post_init__(self) -> None:
        if not self.remote_project_root:
            raise ConfigurationError(
                "Path cannot be empty", key="compilation.remote_project_root"
            )
        if not (
            self.remote_project_root.startswith("/")
            or self.remote_project_root == "~"
            or self.remote_project_root.startswith("~/")
        ):
            raise ConfigurationError(
                f"Remote path must be absolute or start with ~/, "
                f"got {self.remote_project_root!r}",
                key="compilation.remote_project_root",
            )
        try:
            validate_path(self.output_directory, allow_absolute=False)
        except (PathTraversalError, ValueError) as e:
            raise ConfigurationError(str(e), key="compilation.output_directory") from e

    @property
    def remote_output_directory(self) -> str:
        """Absolute (or home-relative) remote output path."""
        return posixpath.join(self.remote_project_root, self.output_directory)

    @property
    def local_output_directory(self) -> Path:
        """Local output path."""
        return self.local_project_root / self.output_directory

    def check_local_root(self) -> None:
        """Ensure the local project root can be synchronized.

        Raises:
            ConfigurationError: If the root is missing, not a directory,
                or not readable
        """
        root = self.local_project_root
        key = "compilation.local_project_root"
        if not root.exists():
            raise ConfigurationError(f"Local project root does not exist: {root}", key=key)
        if not root.is_dir():
            raise ConfigurationError(f"Local project root is not a directory: {root}", key=key)
        if not os.access(root, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Local project root is not readable: {root}", key=key)


@dataclass(frozen=True)
class BuildConfig:
    """A parsed build file."""

    ssh: ConnectionConfig
    compilation: CompilationConfig
    commands: tuple[CommandSpec, ...] = ()

    def commands_for(self, phase: Phase) -> list[CommandSpec]:
        """Commands of one phase, in configured order."""
        return [spec for spec in self.commands if spec.phase is phase]
