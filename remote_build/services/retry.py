"""Bounded retry for session open and file transfers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from remote_build.errors import ConnectionError, TransferError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How often to retry a transient failure, and how long to wait.

    ``max_attempts=1`` disables retries. Only failures whose
    ``is_transient`` is true are retried; authentication, protocol,
    missing-source and permission failures are raised immediately.
    """

    max_attempts: int = 1
    backoff: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff * (self.multiplier ** (attempt - 1))

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Run ``operation`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine factory
            description: What is being attempted, for logs
            sleep: Awaitable sleep, replaceable in tests

        Returns:
            The operation's result

        Raises:
            ConnectionError: Last connection failure
            TransferError: Last transfer failure
        """
        attempt = 1
        while True:
            try:
                return await operation()
            except (ConnectionError, TransferError) as e:
                if not e.is_transient or attempt >= self.max_attempts:
                    raise
                wait = self.delay(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d): %s, retrying in %.1fs",
                    description,
                    attempt,
                    self.max_attempts,
                    e,
                    wait,
                )
                await sleep(wait)
                attempt += 1
