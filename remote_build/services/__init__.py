"""Services for remote builds."""

from remote_build.services.artifacts import ArtifactRetriever
from remote_build.services.coordinator import BuildCoordinator
from remote_build.services.pipeline import CommandPipeline
from remote_build.services.retry import RetryPolicy
from remote_build.services.sync import ProjectSynchronizer
from remote_build.services.transport import SSHTransport

__all__ = [
    "ArtifactRetriever",
    "BuildCoordinator",
    "CommandPipeline",
    "ProjectSynchronizer",
    "RetryPolicy",
    "SSHTransport",
]
