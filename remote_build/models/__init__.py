"""Data models for remote builds."""

from remote_build.models.build import BuildConfig, CommandSpec, CompilationConfig, Phase
from remote_build.models.command import CommandResult, PhaseResult
from remote_build.models.outcome import BuildOutcome, BuildState, can_transition
from remote_build.models.ssh import ConnectionConfig

__all__ = [
    "BuildConfig",
    "BuildOutcome",
    "BuildState",
    "can_transition",
    "CommandResult",
    "CommandSpec",
    "CompilationConfig",
    "ConnectionConfig",
    "Phase",
    "PhaseResult",
]
