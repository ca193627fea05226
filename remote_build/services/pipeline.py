"""Command pipeline: run one phase of build commands, fail-fast."""

import asyncio
import dataclasses
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from remote_build.errors import BuildCancelled
from remote_build.events import (
    CommandFinished,
    CommandOutput,
    CommandStarted,
    NullSink,
    OutputStream,
)
from remote_build.models import CommandSpec, Phase, PhaseResult
from remote_build.utils.shell import parse_marker, strip_marker, wrap_command

if TYPE_CHECKING:
    from remote_build.protocols import EventSink, TransportSession

logger = logging.getLogger(__name__)


class _OutputForwarder:
    """Turns streamed lines into CommandOutput events, hiding the cwd report.

    The wrapper's report is a blank line followed by the marker line, so a
    blank stdout line is held back until the next stdout line shows
    whether it belongs to the report.
    """

    def __init__(self, sink: "EventSink", phase: Phase, index: int):
        self.sink = sink
        self.phase = phase
        self.index = index
        self._held_blank = False

    def __call__(self, stream: OutputStream, line: str) -> None:
        if stream is OutputStream.STDOUT:
            if parse_marker(line) is not None:
                self._held_blank = False
                return
            self.flush()
            if not line:
                self._held_blank = True
                return
        self._emit(stream, line)

    def flush(self) -> None:
        """Emit a held blank line that turned out to be command output."""
        if self._held_blank:
            self._held_blank = False
            self._emit(OutputStream.STDOUT, "")

    def _emit(self, stream: OutputStream, line: str) -> None:
        self.sink.emit(CommandOutput(self.phase, self.index, stream, line))


class CommandPipeline:
    """Runs configured commands in order, stopping at the first failure.

    Every command gets a fresh remote shell. The working directory a
    command leaves behind (for example after ``cd build``) is carried to
    the next command through ``cwd``, so commands behave as if they shared
    one shell across both phases.
    """

    def __init__(
        self,
        sink: "EventSink | None" = None,
        cwd: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        """Initialize the pipeline.

        Args:
            sink: Receives command start, output and finish events
            cwd: Initial remote working directory (None = login directory)
            cancel_event: When set, the pipeline stops before the next command
        """
        self.sink = sink or NullSink()
        self.cwd = cwd
        self.cancel_event = cancel_event

    async def execute(
        self,
        session: "TransportSession",
        phase: Phase,
        commands: Sequence[CommandSpec],
    ) -> PhaseResult:
        """Run ``commands`` as ``phase``.

        Returns:
            PhaseResult whose results end at the first non-zero exit

        Raises:
            BuildCancelled: If cancellation was requested between commands
            ConnectionError: If the session is lost mid-command
        """
        phase_result = PhaseResult(phase=phase)
        logger.info("Running %d %s command(s)", len(commands), phase.label)

        for index, spec in enumerate(commands):
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise BuildCancelled(f"Build cancelled before {phase.label} command #{index}")

            issued_in = self.cwd
            self.sink.emit(CommandStarted(phase, index, spec, issued_in))
            logger.info(
                "%s command #%d: %s (cwd=%s)",
                phase.label,
                index,
                spec.description or spec.command,
                issued_in or "~",
            )

            script = wrap_command(spec.command, issued_in)
            logger.debug("Wrapped command:\n%s", script)

            forward = _OutputForwarder(self.sink, phase, index)
            raw = await session.run(script, on_output=forward)
            forward.flush()
            output, reported_cwd = strip_marker(raw.output)
            if reported_cwd:
                self.cwd = reported_cwd

            result = dataclasses.replace(raw, command=spec.command, output=output, cwd=issued_in)
            phase_result.results.append(result)
            self.sink.emit(CommandFinished(phase, index, result))

            if not result.succeeded:
                logger.error(
                    "%s command #%d failed with exit status %d after %.2fs",
                    phase.label,
                    index,
                    result.exit_status,
                    result.duration,
                )
                phase_result.failed_index = index
                return phase_result

            logger.info(
                "%s command #%d completed in %.2fs", phase.label, index, result.duration
            )

        return phase_result
