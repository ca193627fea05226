"""SSH host key verification.

Resolves the known_hosts file handed to asyncssh.
"""

import logging
import os
from pathlib import Path

from remote_build.errors import ConfigurationError

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """Resolves which known_hosts file, if any, verifies the build host."""

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Fail when the known_hosts file is missing

        Raises:
            ConfigurationError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, env_value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to disable verification
        """
        if env_value and env_value.lower() == "none":
            logger.warning(
                "SSH host key verification DISABLED (REMOTE_BUILD_KNOWN_HOSTS=none); "
                "only use this on trusted networks"
            )
            return None

        if env_value:
            path = Path(os.path.expanduser(env_value))
            source = "REMOTE_BUILD_KNOWN_HOSTS"
        else:
            path = Path.home() / ".ssh" / "known_hosts"
            source = "default location"

        if path.exists():
            return str(path)

        if self.strict_checking:
            raise ConfigurationError(
                f"known_hosts file not found at {path} ({source}). "
                f"Add the build host with: ssh-keyscan <host> >> {path}, "
                f"or set REMOTE_BUILD_STRICT_HOST_KEY_CHECKING=false",
                key="REMOTE_BUILD_KNOWN_HOSTS",
            )

        logger.warning(
            "known_hosts not found at %s, host key verification disabled", path
        )
        return None

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file, or None if verification is disabled."""
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None
