"""Progress events emitted during a build run.

The core never prints. Components report progress to an event sink
supplied by the caller; the CLI renders events to the console and tests
collect them in memory.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from remote_build.models import BuildState, CommandResult, CommandSpec, Phase


class OutputStream(Enum):
    """Remote stream a line of output came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


class TransferDirection(Enum):
    """Direction of a file transfer."""

    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class StateChanged:
    """The run moved to a new state."""

    previous: "BuildState"
    current: "BuildState"


@dataclass(frozen=True)
class FileTransferred:
    """A single file was copied."""

    direction: TransferDirection
    source: str
    destination: str


@dataclass(frozen=True)
class CommandStarted:
    """A configured command is about to run."""

    phase: "Phase"
    index: int
    spec: "CommandSpec"
    cwd: str | None


@dataclass(frozen=True)
class CommandOutput:
    """One line of output from the running command."""

    phase: "Phase"
    index: int
    stream: OutputStream
    line: str


@dataclass(frozen=True)
class CommandFinished:
    """A configured command exited."""

    phase: "Phase"
    index: int
    result: "CommandResult"


BuildEvent = Union[StateChanged, FileTransferred, CommandStarted, CommandOutput, CommandFinished]


class NullSink:
    """Event sink that discards everything."""

    def emit(self, event: BuildEvent) -> None:
        pass


class CollectingSink:
    """Event sink that keeps events in memory."""

    def __init__(self) -> None:
        self.events: list[BuildEvent] = []

    def emit(self, event: BuildEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[BuildEvent]:
        """Return collected events of one type, in emission order."""
        return [event for event in self.events if isinstance(event, event_type)]
