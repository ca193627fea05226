"""Command execution data models."""

from dataclasses import dataclass, field

from remote_build.models.build import Phase


@dataclass
class CommandResult:
    """Result of a remote command execution."""

    command: str
    exit_status: int
    output: str = ""
    error: str = ""
    started_at: float = 0.0
    duration: float = 0.0
    cwd: str | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_status == 0


@dataclass
class PhaseResult:
    """Ordered results of one command phase.

    ``results`` stops at the first failing command, so it may be shorter
    than the configured list.
    """

    phase: Phase
    results: list[CommandResult] = field(default_factory=list)
    failed_index: int | None = None

    @property
    def succeeded(self) -> bool:
        """Whether every command of the phase exited with status 0."""
        return self.failed_index is None
