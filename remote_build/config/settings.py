"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)

    # Connection
    connect_timeout: int = field(default=30)

    # Retry at the coordinator boundary (1 = no retry)
    retry_attempts: int = field(default=1)
    retry_backoff: float = field(default=1.0)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from REMOTE_BUILD_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            log_level=os.getenv("REMOTE_BUILD_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("REMOTE_BUILD_LOG_COLORS", True),
            connect_timeout=cls._get_int("REMOTE_BUILD_CONNECT_TIMEOUT", 30, minimum=1),
            retry_attempts=cls._get_int("REMOTE_BUILD_RETRY_ATTEMPTS", 1, minimum=1),
            retry_backoff=cls._get_float("REMOTE_BUILD_RETRY_BACKOFF", 1.0),
        )

    @staticmethod
    def _get_int(key: str, default: int, minimum: int | None = None) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid
            minimum: Smallest accepted value

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if minimum is not None and parsed < minimum:
            logger.warning(
                "%s must be >= %d, got %d, using default %d", key, minimum, parsed, default
            )
            return default
        return parsed

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

        if parsed < 0:
            logger.warning("%s cannot be negative, using default %s", key, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
