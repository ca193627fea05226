"""Artifact retrieval: pull the remote output directory back."""

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from remote_build.events import FileTransferred, NullSink, TransferDirection

if TYPE_CHECKING:
    from remote_build.protocols import EventSink, TransportSession

logger = logging.getLogger(__name__)


class ArtifactRetriever:
    """Downloads ``remote_root/output_dir`` into ``local_root/output_dir``."""

    def __init__(self, sink: "EventSink | None" = None):
        self.sink = sink or NullSink()

    async def retrieve(
        self,
        session: "TransportSession",
        remote_root: str,
        output_dir: str,
        local_root: Path,
    ) -> Path:
        """Copy the build output to the local machine, overwriting files.

        Returns:
            Local output path

        Raises:
            TransferError: If the remote output is missing or a copy fails
        """
        remote_output = posixpath.join(remote_root, output_dir)
        local_output = local_root / output_dir

        logger.info("Retrieving artifacts %s -> %s", remote_output, local_output)
        pairs = await session.download(remote_output, str(local_output))

        for source, destination in pairs:
            self.sink.emit(FileTransferred(TransferDirection.DOWNLOAD, source, destination))

        logger.info("Retrieved %d artifact file(s)", len(pairs))
        return local_output
