"""Command line entry point for remote-build."""

import argparse
import asyncio
import logging
import signal
import sys

from remote_build.config import (
    DEFAULT_BUILD_FILE_NAME,
    Config,
    Settings,
    load_build_config,
    write_default,
)
from remote_build.errors import BuildCancelled, ConfigurationError
from remote_build.models import BuildConfig, BuildOutcome, Phase
from remote_build.reporting import ConsoleSink, render_outcome
from remote_build.services import BuildCoordinator
from remote_build.utils.console import ColorfulFormatter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def configure_logging(settings: Settings) -> None:
    """Configure colorful logging for the remote_build package.

    Log lines go to stderr; build output rendered by ConsoleSink goes to
    stdout.
    """
    use_colors = settings.log_colors and sys.stderr.isatty()

    package_logger = logging.getLogger("remote_build")
    package_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    # Only add handler if not already configured
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    # asyncssh logs every channel at INFO
    logging.getLogger("asyncssh").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="remote-build",
        description="Sync a project to a remote host over SSH, build it there, "
        "and pull the build output back.",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run a remote build (default)")
    run_parser.add_argument("-c", "--config", default=DEFAULT_BUILD_FILE_NAME, help="Build file")
    run_parser.add_argument(
        "-v", "--verbose", action="store_true", help="List every transferred file"
    )

    check_parser = subparsers.add_parser("check", help="Validate a build file and show the plan")
    check_parser.add_argument("-c", "--config", default=DEFAULT_BUILD_FILE_NAME, help="Build file")

    init_parser = subparsers.add_parser("init", help="Write a default build file")
    init_parser.add_argument("path", nargs="?", default=DEFAULT_BUILD_FILE_NAME)

    return parser


async def run_build(coordinator: BuildCoordinator) -> BuildOutcome:
    """Run the coordinator with SIGINT mapped to cooperative cancellation."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, coordinator.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False

    try:
        return await coordinator.run()
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def describe_plan(build: BuildConfig) -> str:
    """Render what a build file would do, without connecting."""
    compilation = build.compilation
    lines = [
        f"Host:           {build.ssh.address} "
        f"(auth={'key' if build.ssh.uses_key else 'password'})",
        f"Local root:     {compilation.local_project_root}",
        f"Remote root:    {compilation.remote_project_root}",
        f"Artifacts:      {compilation.remote_output_directory} -> "
        f"{compilation.local_output_directory}",
    ]
    for phase in Phase:
        commands = build.commands_for(phase)
        lines.append(f"{phase.label} commands ({len(commands)}):")
        for index, spec in enumerate(commands):
            note = f"  # {spec.description}" if spec.description else ""
            lines.append(f"  #{index} {spec.command}{note}")
    return "\n".join(lines)


def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    build = load_build_config(args.config)
    logger.info("Starting remote build from %s", args.config)
    config = Config.from_env()
    use_colors = settings.log_colors and sys.stdout.isatty()

    sink = ConsoleSink(use_colors=use_colors, verbose=args.verbose)
    coordinator = BuildCoordinator.from_config(build, config, sink=sink)
    outcome = asyncio.run(run_build(coordinator))

    print(render_outcome(outcome, use_colors=use_colors))
    if outcome.succeeded:
        return EXIT_OK
    if isinstance(outcome.reason, BuildCancelled):
        return EXIT_INTERRUPTED
    if isinstance(outcome.reason, ConfigurationError):
        return EXIT_CONFIG_ERROR
    return EXIT_BUILD_FAILED


def _cmd_check(args: argparse.Namespace) -> int:
    build = load_build_config(args.config)
    build.compilation.check_local_root()
    print(describe_plan(build))
    return EXIT_OK


def _cmd_init(args: argparse.Namespace) -> int:
    path = write_default(args.path)
    print(f"Wrote {path}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings)

    command = args.command or "run"
    if args.command is None:
        args.config = DEFAULT_BUILD_FILE_NAME
        args.verbose = False

    try:
        if command == "init":
            return _cmd_init(args)
        if command == "check":
            return _cmd_check(args)
        return _cmd_run(args, settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
