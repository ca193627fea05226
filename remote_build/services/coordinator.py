"""Build session coordinator.

Drives one run through its states:

    IDLE -> CONNECTING -> SYNCING -> RUNNING_PRE_COMMANDS
         -> RUNNING_POST_COMMANDS -> RETRIEVING_ARTIFACTS -> SUCCEEDED

Any failure moves the run straight to FAILED, remembering the state it
failed in. There is no recovery inside a run apart from the bounded retry
policy around open, sync and retrieve. The transport session is closed on
every exit path before the outcome is returned.
"""

import asyncio
import functools
import logging
from typing import TYPE_CHECKING

from remote_build.errors import BuildCancelled, CommandFailure, RemoteBuildError
from remote_build.events import NullSink, StateChanged
from remote_build.models import BuildOutcome, BuildState, Phase, PhaseResult, can_transition
from remote_build.services.artifacts import ArtifactRetriever
from remote_build.services.pipeline import CommandPipeline
from remote_build.services.retry import RetryPolicy
from remote_build.services.sync import ProjectSynchronizer
from remote_build.services.transport import SSHTransport

if TYPE_CHECKING:
    from remote_build.config import Config
    from remote_build.models import BuildConfig, CommandResult, CommandSpec
    from remote_build.protocols import EventSink, SessionOpener, TransportSession

logger = logging.getLogger(__name__)


class BuildCoordinator:
    """Runs one build: connect, sync, pre, post, retrieve.

    A coordinator runs once. Concurrent builds each need their own
    coordinator; nothing is shared between them.

    Example:
        coordinator = BuildCoordinator.from_config(build, Config.from_env())
        outcome = await coordinator.run()
        print(outcome.describe())
    """

    def __init__(
        self,
        build: "BuildConfig",
        opener: "SessionOpener",
        sink: "EventSink | None" = None,
        retry: RetryPolicy | None = None,
        cancel_event: asyncio.Event | None = None,
        sync_exclude: tuple[str, ...] = (),
    ):
        """Initialize the coordinator.

        Args:
            build: Parsed build file
            opener: Coroutine function opening a TransportSession
            sink: Receives progress events
            retry: Retry policy for open, sync and retrieve (default: none)
            cancel_event: Set to stop the run before its next command or phase
            sync_exclude: Top-level local names not uploaded
        """
        self.build = build
        self.opener = opener
        self.sink = sink or NullSink()
        self.retry = retry or RetryPolicy()
        self.cancel_event = cancel_event or asyncio.Event()
        self.state = BuildState.IDLE

        self.synchronizer = ProjectSynchronizer(self.sink, exclude=sync_exclude)
        self.pipeline = CommandPipeline(
            self.sink,
            cwd=build.compilation.remote_project_root,
            cancel_event=self.cancel_event,
        )
        self.retriever = ArtifactRetriever(self.sink)

    @classmethod
    def from_config(
        cls,
        build: "BuildConfig",
        config: "Config",
        sink: "EventSink | None" = None,
        cancel_event: asyncio.Event | None = None,
    ) -> "BuildCoordinator":
        """Create a coordinator that opens real SSH sessions.

        Args:
            build: Parsed build file
            config: Environment configuration (known_hosts, timeouts, retry)
            sink: Receives progress events
            cancel_event: Set to stop the run between commands

        Returns:
            Coordinator wired to SSHTransport
        """
        opener = functools.partial(
            SSHTransport.open,
            known_hosts=config.known_hosts_path,
            connect_timeout=config.connect_timeout,
        )
        retry = RetryPolicy(max_attempts=config.retry_attempts, backoff=config.retry_backoff)
        return cls(build, opener, sink=sink, retry=retry, cancel_event=cancel_event)

    def cancel(self) -> None:
        """Request cancellation; takes effect before the next command or phase."""
        logger.warning("Cancellation requested")
        self.cancel_event.set()

    def _transition(self, target: BuildState) -> None:
        if not can_transition(self.state, target):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {target.value}")
        previous, self.state = self.state, target
        logger.info("State %s -> %s", previous.value, target.value)
        self.sink.emit(StateChanged(previous, target))

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise BuildCancelled(f"Build cancelled after {self.state.value}")

    async def run(self) -> BuildOutcome:
        """Run the build to a terminal state.

        Returns:
            BuildOutcome; failures are reported in it, not raised

        Raises:
            RuntimeError: If this coordinator already ran
        """
        if self.state is not BuildState.IDLE:
            raise RuntimeError("A BuildCoordinator can only run once")

        compilation = self.build.compilation
        results: list["CommandResult"] = []
        session: "TransportSession | None" = None
        failed_in: BuildState | None = None
        reason: RemoteBuildError | None = None
        output_path = None

        try:
            compilation.check_local_root()

            self._transition(BuildState.CONNECTING)
            session = await self.retry.call(
                lambda: self.opener(self.build.ssh),
                f"Connecting to {self.build.ssh.address}",
            )
            connected = session

            self._check_cancelled()
            self._transition(BuildState.SYNCING)
            await self.retry.call(
                lambda: self.synchronizer.sync(
                    connected,
                    compilation.local_project_root,
                    compilation.remote_project_root,
                ),
                "Project sync",
            )

            for phase, state in (
                (Phase.PRE_COMPILATION, BuildState.RUNNING_PRE_COMMANDS),
                (Phase.POST_COMPILATION, BuildState.RUNNING_POST_COMMANDS),
            ):
                self._check_cancelled()
                self._transition(state)
                commands = self.build.commands_for(phase)
                phase_result = await self.pipeline.execute(connected, phase, commands)
                results.extend(phase_result.results)
                if not phase_result.succeeded:
                    raise self._command_failure(phase_result, commands)

            self._check_cancelled()
            self._transition(BuildState.RETRIEVING_ARTIFACTS)
            output_path = await self.retry.call(
                lambda: self.retriever.retrieve(
                    connected,
                    compilation.remote_project_root,
                    compilation.output_directory,
                    compilation.local_project_root,
                ),
                "Artifact retrieval",
            )
        except RemoteBuildError as e:
            failed_in = self.state
            reason = e
            logger.error("Build failed while %s: %s", failed_in.value, e)
        finally:
            if session is not None:
                await session.close()

        if reason is not None:
            self._transition(BuildState.FAILED)
            return BuildOutcome(
                state=BuildState.FAILED,
                failed_in=failed_in,
                reason=reason,
                results=results,
            )

        self._transition(BuildState.SUCCEEDED)
        return BuildOutcome(state=BuildState.SUCCEEDED, results=results, output_path=output_path)

    @staticmethod
    def _command_failure(
        phase_result: PhaseResult,
        commands: list["CommandSpec"],
    ) -> CommandFailure:
        index = phase_result.failed_index
        assert index is not None
        failed = phase_result.results[index]
        return CommandFailure(
            phase=phase_result.phase,
            index=index,
            description=commands[index].description or commands[index].command,
            exit_status=failed.exit_status,
            partial_output=failed.output + failed.error,
        )
