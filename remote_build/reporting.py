"""Console rendering of build events and outcomes."""

import sys
from typing import TextIO

from remote_build.events import (
    BuildEvent,
    CommandFinished,
    CommandOutput,
    CommandStarted,
    FileTransferred,
    OutputStream,
    StateChanged,
)
from remote_build.models import BuildOutcome, BuildState
from remote_build.utils.console import COLORS

STATE_TITLES = {
    BuildState.CONNECTING: "Connecting",
    BuildState.SYNCING: "Syncing project",
    BuildState.RUNNING_PRE_COMMANDS: "Running pre-compilation commands",
    BuildState.RUNNING_POST_COMMANDS: "Running post-compilation commands",
    BuildState.RETRIEVING_ARTIFACTS: "Retrieving artifacts",
    BuildState.SUCCEEDED: "Succeeded",
    BuildState.FAILED: "Failed",
}


class ConsoleSink:
    """Event sink that writes human-readable progress to a stream."""

    def __init__(
        self,
        stream: TextIO | None = None,
        use_colors: bool = True,
        verbose: bool = False,
    ):
        """Initialize the sink.

        Args:
            stream: Where to write (default: stdout)
            use_colors: Whether to use ANSI colors
            verbose: Also print every transferred file
        """
        self.stream = stream or sys.stdout
        self.use_colors = use_colors
        self.verbose = verbose
        self.files_transferred = 0

    def _colorize(self, text: str, *colors: str) -> str:
        if not self.use_colors:
            return text
        prefix = "".join(COLORS[color] for color in colors)
        return f"{prefix}{text}{COLORS['reset']}"

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    def emit(self, event: BuildEvent) -> None:
        """Render one event."""
        if isinstance(event, StateChanged):
            self._on_state(event)
        elif isinstance(event, FileTransferred):
            self.files_transferred += 1
            if self.verbose:
                self._write(
                    self._colorize(f"  {event.source} -> {event.destination}", "dim")
                )
        elif isinstance(event, CommandStarted):
            title = event.spec.description or event.spec.command
            self._write(self._colorize(f"[{event.phase.value} #{event.index}] {title}", "bold"))
            self._write(self._colorize(f"  $ {event.spec.command}", "bright_black"))
        elif isinstance(event, CommandOutput):
            if event.stream is OutputStream.STDERR:
                self._write(self._colorize(f"  {event.line}", "yellow"))
            else:
                self._write(f"  {event.line}")
        elif isinstance(event, CommandFinished):
            result = event.result
            if result.succeeded:
                status = self._colorize("ok", "bright_green")
            else:
                status = self._colorize(f"exit {result.exit_status}", "bright_red")
            self._write(f"  {status} ({result.duration:.2f}s)")

    def _on_state(self, event: StateChanged) -> None:
        if event.previous in (BuildState.SYNCING, BuildState.RETRIEVING_ARTIFACTS):
            self._write(f"  {self.files_transferred} file(s) transferred")
            self.files_transferred = 0

        title = STATE_TITLES.get(event.current, event.current.value)
        if event.current is BuildState.FAILED:
            color = "bright_red"
        elif event.current is BuildState.SUCCEEDED:
            color = "bright_green"
        else:
            color = "bright_cyan"
        self._write(self._colorize(f"==> {title}", "bold", color))


def render_outcome(outcome: BuildOutcome, use_colors: bool = True) -> str:
    """Render the final report line(s) for an outcome."""
    text = outcome.describe()
    if not use_colors:
        return text
    color = COLORS["bright_green"] if outcome.succeeded else COLORS["bright_red"]
    first, _, rest = text.partition("\n")
    colored = f"{color}{first}{COLORS['reset']}"
    return f"{colored}\n{rest}" if rest else colored
