"""Application configuration.

Delegates to specialized components:
- Settings: Environment variables
- HostKeyVerifier: known_hosts resolution
"""

import os
from dataclasses import dataclass

from remote_build.config.host_keys import HostKeyVerifier
from remote_build.config.settings import Settings


@dataclass
class Config:
    """Process-wide configuration, independent of any one build file."""

    settings: Settings
    host_keys: HostKeyVerifier

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Raises:
            ConfigurationError: If strict host key checking is on and the
                known_hosts file is missing
        """
        return cls(
            settings=Settings.from_env(),
            host_keys=HostKeyVerifier(
                known_hosts_path=os.getenv("REMOTE_BUILD_KNOWN_HOSTS"),
                strict_checking=cls._get_bool_env("REMOTE_BUILD_STRICT_HOST_KEY_CHECKING", True),
            ),
        )

    @staticmethod
    def _get_bool_env(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() != "false"

    @property
    def connect_timeout(self) -> int:
        """Dial and handshake timeout in seconds."""
        return self.settings.connect_timeout

    @property
    def retry_attempts(self) -> int:
        """Maximum attempts for open, upload and download."""
        return self.settings.retry_attempts

    @property
    def retry_backoff(self) -> float:
        """Initial delay between attempts in seconds."""
        return self.settings.retry_backoff

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()
