"""Project synchronization: mirror the local project tree remotely."""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from remote_build.errors import TransferError, TransferErrorKind
from remote_build.events import FileTransferred, NullSink, TransferDirection

if TYPE_CHECKING:
    from remote_build.protocols import EventSink, TransportSession

logger = logging.getLogger(__name__)


class ProjectSynchronizer:
    """Uploads the local project root to the remote project root.

    The mirror is additive: every local file is written remotely, and
    remote files with no local counterpart are left alone.
    """

    def __init__(self, sink: "EventSink | None" = None, exclude: Iterable[str] = ()):
        """Initialize the synchronizer.

        Args:
            sink: Receives a FileTransferred event per uploaded file
            exclude: Top-level names under the local root to skip
        """
        self.sink = sink or NullSink()
        self.exclude = frozenset(exclude)

    async def sync(
        self,
        session: "TransportSession",
        local_root: Path,
        remote_root: str,
    ) -> int:
        """Upload every file under ``local_root`` to ``remote_root``.

        Returns:
            Number of files uploaded

        Raises:
            TransferError: If the local root is missing or a copy fails
        """
        if not local_root.is_dir():
            raise TransferError(TransferErrorKind.SOURCE_MISSING, str(local_root))

        logger.info("Syncing %s -> %s", local_root, remote_root)
        if not self.exclude:
            pairs = await session.upload(str(local_root), remote_root)
        else:
            pairs = []
            for child in sorted(local_root.iterdir()):
                if child.name in self.exclude:
                    logger.debug("Skipping excluded path %s", child)
                    continue
                if not child.exists():
                    logger.warning("Skipping dangling symlink %s", child)
                    continue
                pairs.extend(await session.upload(str(child), f"{remote_root.rstrip('/')}/{child.name}"))

        for source, destination in pairs:
            self.sink.emit(FileTransferred(TransferDirection.UPLOAD, source, destination))

        logger.info("Synced %d file(s)", len(pairs))
        return len(pairs)
