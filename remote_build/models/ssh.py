"""SSH connection data models."""

from dataclasses import dataclass, field

from remote_build.errors import ConfigurationError
from remote_build.utils.validation import validate_host


@dataclass(frozen=True)
class ConnectionConfig:
    """SSH connection settings for the build host.

    Exactly one run owns a ConnectionConfig. Either ``password`` or
    ``identity_file`` must be set; when both are, key authentication is
    offered first and the password is used as fallback.
    """

    host: str
    username: str
    port: int = 22
    password: str | None = field(default=None, repr=False)
    identity_file: str | None = None
    passphrase: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        try:
            validate_host(self.host)
        except ValueError as e:
            raise ConfigurationError(str(e), key="ssh.host") from e
        if not self.username:
            raise ConfigurationError("Username cannot be empty", key="ssh.username")
        if isinstance(self.port, bool) or not 1 <= self.port <= 65535:
            raise ConfigurationError(
                f"Port must be in [1, 65535], got {self.port}", key="ssh.port"
            )
        if not self.password and not self.identity_file:
            raise ConfigurationError(
                "Either password or identity_file is required", key="ssh"
            )

    @property
    def uses_key(self) -> bool:
        """Whether key-based authentication is configured."""
        return bool(self.identity_file)

    @property
    def address(self) -> str:
        """user@host:port, for logs."""
        return f"{self.username}@{self.host}:{self.port}"
