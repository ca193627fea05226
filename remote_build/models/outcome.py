"""Build run state and outcome models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from remote_build.errors import CommandFailure
from remote_build.models.command import CommandResult


class BuildState(Enum):
    """States of one build run."""

    IDLE = "idle"
    CONNECTING = "connecting"
    SYNCING = "syncing"
    RUNNING_PRE_COMMANDS = "running_pre_commands"
    RUNNING_POST_COMMANDS = "running_post_commands"
    RETRIEVING_ARTIFACTS = "retrieving_artifacts"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible."""
        return self in (BuildState.SUCCEEDED, BuildState.FAILED)


# Forward path; FAILED is reachable from every non-terminal state
TRANSITIONS: dict[BuildState, BuildState] = {
    BuildState.IDLE: BuildState.CONNECTING,
    BuildState.CONNECTING: BuildState.SYNCING,
    BuildState.SYNCING: BuildState.RUNNING_PRE_COMMANDS,
    BuildState.RUNNING_PRE_COMMANDS: BuildState.RUNNING_POST_COMMANDS,
    BuildState.RUNNING_POST_COMMANDS: BuildState.RETRIEVING_ARTIFACTS,
    BuildState.RETRIEVING_ARTIFACTS: BuildState.SUCCEEDED,
}


def can_transition(current: BuildState, target: BuildState) -> bool:
    """Check whether ``current -> target`` is a legal transition."""
    if current.is_terminal:
        return False
    if target is BuildState.FAILED:
        return True
    return TRANSITIONS.get(current) is target


@dataclass
class BuildOutcome:
    """Final result of a build run."""

    state: BuildState
    failed_in: BuildState | None = None
    reason: Exception | None = None
    results: list[CommandResult] = field(default_factory=list)
    output_path: Path | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the run reached SUCCEEDED."""
        return self.state is BuildState.SUCCEEDED

    def describe(self) -> str:
        """Render a human-readable summary of the outcome."""
        if self.succeeded:
            return (
                f"Build succeeded: {len(self.results)} command(s) run, "
                f"artifacts in {self.output_path}"
            )

        where = self.failed_in.value if self.failed_in else "unknown"
        lines = [f"Build failed while {where}: {self.reason}"]
        if isinstance(self.reason, CommandFailure):
            failure = self.reason
            lines.append(
                f"  command: {failure.phase.label} #{failure.index} "
                f"({failure.description})"
            )
            lines.append(f"  exit status: {failure.exit_status}")
            if failure.partial_output.strip():
                lines.append("  output:")
                lines.extend(
                    f"    {line}" for line in failure.partial_output.rstrip().splitlines()
                )
        return "\n".join(lines)
