"""Tests for the fail-fast command pipeline."""

import asyncio

import pytest

from remote_build.errors import BuildCancelled
from remote_build.events import (
    CollectingSink,
    CommandFinished,
    CommandOutput,
    CommandStarted,
    OutputStream,
)
from remote_build.models import CommandSpec, Phase
from remote_build.services.pipeline import CommandPipeline
from remote_build.utils.shell import CWD_MARKER

ROOT = "/srv/build/project"


@pytest.fixture
def sink() -> CollectingSink:
    """Event collector."""
    return CollectingSink()


@pytest.fixture
def pipeline(sink: CollectingSink) -> CommandPipeline:
    """Pipeline starting in the remote project root."""
    return CommandPipeline(sink, cwd=ROOT)


@pytest.mark.asyncio
async def test_all_commands_succeed(pipeline: CommandPipeline, fake_transport) -> None:
    """Every command runs in order when all succeed."""
    commands = [CommandSpec("echo one"), CommandSpec("echo two"), CommandSpec("echo three")]

    result = await pipeline.execute(fake_transport, Phase.PRE_COMPILATION, commands)

    assert result.succeeded
    assert result.failed_index is None
    assert [r.output for r in result.results] == ["one\n", "two\n", "three\n"]
    assert [cmd for _, cmd in fake_transport.executed] == ["echo one", "echo two", "echo three"]


@pytest.mark.asyncio
async def test_stops_at_first_failure(pipeline: CommandPipeline, fake_transport) -> None:
    """A failing command at index k yields k+1 results and nothing after it runs."""
    commands = [
        CommandSpec("echo ok"),
        CommandSpec("exit 3", description="broken step"),
        CommandSpec("echo never"),
    ]

    result = await pipeline.execute(fake_transport, Phase.PRE_COMPILATION, commands)

    assert not result.succeeded
    assert result.failed_index == 1
    assert len(result.results) == 2
    assert result.results[1].exit_status == 3
    assert result.results[1].command == "exit 3"
    assert len(fake_transport.executed) == 2


@pytest.mark.asyncio
async def test_empty_phase(pipeline: CommandPipeline, fake_transport) -> None:
    """No commands means success without touching the session."""
    result = await pipeline.execute(fake_transport, Phase.POST_COMPILATION, [])

    assert result.succeeded
    assert result.results == []
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_working_directory_carries_forward(
    pipeline: CommandPipeline, fake_transport
) -> None:
    """A cd in one command is seen by the next, across phases."""
    await pipeline.execute(
        fake_transport, Phase.PRE_COMPILATION, [CommandSpec("cd build"), CommandSpec("pwd")]
    )
    post = await pipeline.execute(fake_transport, Phase.POST_COMPILATION, [CommandSpec("pwd")])

    assert fake_transport.executed[0][0] == ROOT
    assert fake_transport.executed[1][0] == f"{ROOT}/build"
    assert fake_transport.executed[2][0] == f"{ROOT}/build"
    assert post.results[0].output == f"{ROOT}/build\n"
    assert post.results[0].cwd == f"{ROOT}/build"


@pytest.mark.asyncio
async def test_failed_command_keeps_working_directory(
    pipeline: CommandPipeline, fake_transport
) -> None:
    """A command that exits the shell reports no directory; the old one stays."""
    await pipeline.execute(fake_transport, Phase.PRE_COMPILATION, [CommandSpec("exit 1")])

    assert pipeline.cwd == ROOT


@pytest.mark.asyncio
async def test_marker_is_hidden(
    pipeline: CommandPipeline, fake_transport, sink: CollectingSink
) -> None:
    """The directory marker never reaches results or output events."""
    result = await pipeline.execute(
        fake_transport, Phase.PRE_COMPILATION, [CommandSpec("echo building")]
    )

    assert CWD_MARKER not in result.results[0].output
    lines = [event.line for event in sink.of_type(CommandOutput)]
    assert lines == ["building"]


@pytest.mark.asyncio
async def test_events_bracket_each_command(
    pipeline: CommandPipeline, fake_transport, sink: CollectingSink
) -> None:
    """Start, output and finish events arrive in order per command."""
    spec = CommandSpec("echo out\nwarn careful", description="mixed")

    await pipeline.execute(fake_transport, Phase.POST_COMPILATION, [spec])

    kinds = [type(event) for event in sink.events]
    assert kinds == [CommandStarted, CommandOutput, CommandOutput, CommandFinished]
    started = sink.events[0]
    assert started.spec is spec
    assert started.cwd == ROOT
    assert started.phase is Phase.POST_COMPILATION
    streams = [event.stream for event in sink.of_type(CommandOutput)]
    assert streams == [OutputStream.STDOUT, OutputStream.STDERR]
    finished = sink.events[-1]
    assert finished.result.error == "careful\n"


@pytest.mark.asyncio
async def test_cancellation_before_next_command(fake_transport) -> None:
    """A set cancel event stops the phase before the next command."""
    cancel = asyncio.Event()
    pipeline = CommandPipeline(cwd=ROOT, cancel_event=cancel)
    cancel.set()

    with pytest.raises(BuildCancelled, match="pre-compilation command #0"):
        await pipeline.execute(fake_transport, Phase.PRE_COMPILATION, [CommandSpec("echo x")])

    assert fake_transport.executed == []


@pytest.mark.asyncio
async def test_login_directory_when_no_cwd(fake_transport) -> None:
    """Without a starting directory the command runs in the login directory."""
    pipeline = CommandPipeline()

    await pipeline.execute(fake_transport, Phase.PRE_COMPILATION, [CommandSpec("pwd")])

    assert fake_transport.executed[0][0] is None
    assert pipeline.cwd == "/home/builder"


@pytest.mark.asyncio
async def test_marker_text_in_build_output_keeps_cwd(
    pipeline: CommandPipeline, fake_transport, sink: CollectingSink
) -> None:
    """Build output mentioning the marker is shown and cannot move the cwd."""
    line = f"note: {CWD_MARKER}/tmp/elsewhere"

    result = await pipeline.execute(
        fake_transport, Phase.PRE_COMPILATION, [CommandSpec(f"echo {line}")]
    )

    assert result.results[0].output == f"{line}\n"
    assert pipeline.cwd == ROOT
    assert [event.line for event in sink.of_type(CommandOutput)] == [line]


@pytest.mark.asyncio
async def test_blank_output_lines_are_kept(
    pipeline: CommandPipeline, fake_transport, sink: CollectingSink
) -> None:
    """Blank lines from the command survive in results and events."""
    result = await pipeline.execute(
        fake_transport, Phase.PRE_COMPILATION, [CommandSpec("echo a\necho\necho b\necho")]
    )

    assert result.results[0].output == "a\n\nb\n\n"
    assert [event.line for event in sink.of_type(CommandOutput)] == ["a", "", "b", ""]


@pytest.mark.asyncio
async def test_blank_line_before_early_exit_is_kept(
    pipeline: CommandPipeline, fake_transport, sink: CollectingSink
) -> None:
    """A trailing blank line is flushed when the command reports no cwd."""
    await pipeline.execute(
        fake_transport, Phase.PRE_COMPILATION, [CommandSpec("echo x\necho\nexit 4")]
    )

    assert [event.line for event in sink.of_type(CommandOutput)] == ["x", ""]
