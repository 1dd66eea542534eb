"""Connection supervisor with exponential backoff.

Establishes a query-capable session, retrying failed attempts.  The
retry loop is modelled as an explicit state machine::

    IDLE -> ATTEMPTING(1) -> SUCCEEDED
                          -> BACKOFF(1) -> ATTEMPTING(2) -> ...
                          -> FAILED            (after max_attempts)

After failed attempt ``n`` the supervisor waits ``min(2 ** n, 16)``
seconds.  Every failure is treated the same way: authentication,
network, and timeout errors are all retried.

Usage:
    from pg_snapshot.connection import acquire

    session = await acquire(config, max_attempts=3)
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from pg_snapshot.adapters.base import CatalogSession
from pg_snapshot.adapters.postgres import AsyncPostgresSession
from pg_snapshot.config.models import ConnectionConfig
from pg_snapshot.errors import ConnectionFailure
from pg_snapshot.logging_config import get_logger

logger = get_logger(__name__)

MAX_BACKOFF_SECONDS = 16

Connector = Callable[[ConnectionConfig], Awaitable[CatalogSession]]
Sleeper = Callable[[float], Awaitable[None]]


class SupervisorState(str, Enum):
    """States of the connection retry machine."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def backoff_delay(attempt: int) -> int:
    """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
    return min(2 ** attempt, MAX_BACKOFF_SECONDS)


class ConnectionSupervisor:
    """Drives connection attempts for one ``ConnectionConfig``.

    Args:
        config: Target session parameters.
        max_attempts: Total number of attempts before giving up.
        connector: Coroutine function opening a session.  Defaults to
            ``AsyncPostgresSession.connect``.
        sleep: Coroutine function used for backoff waits.  Defaults to
            ``asyncio.sleep``.

    Attributes:
        state: Current ``SupervisorState``.
        attempt: Number of the current (or last) attempt, 0 before the first.
        transitions: Ordered ``(state, attempt)`` history of the run.
        last_error: Most recent connection error, if any.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        max_attempts: int = 3,
        connector: Connector | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._config = config
        self._max_attempts = max_attempts
        self._connector = connector or AsyncPostgresSession.connect
        self._sleep = sleep or asyncio.sleep

        self.state = SupervisorState.IDLE
        self.attempt = 0
        self.transitions: list[tuple[SupervisorState, int]] = [(self.state, 0)]
        self.last_error: Exception | None = None

    def _enter(self, state: SupervisorState) -> None:
        self.state = state
        self.transitions.append((state, self.attempt))

    async def acquire(self) -> CatalogSession:
        """Open a session, retrying with backoff.

        Returns:
            A connected ``CatalogSession``.

        Raises:
            ConnectionFailure: After ``max_attempts`` failed attempts.  The
                last observed error is chained as ``__cause__``.
            RuntimeError: If called again after the machine has finished.
        """
        if self.state is not SupervisorState.IDLE:
            raise RuntimeError(f"Supervisor already ran (state: {self.state.value})")

        while True:
            self.attempt += 1
            self._enter(SupervisorState.ATTEMPTING)
            try:
                session = await self._connector(self._config)
            except Exception as e:
                self.last_error = e
                logger.warning("Connection attempt %d failed: %s", self.attempt, e)
            else:
                self._enter(SupervisorState.SUCCEEDED)
                logger.debug(
                    "Connected to %s:%s/%s on attempt %d",
                    self._config.host,
                    self._config.port,
                    self._config.dbname,
                    self.attempt,
                )
                return session

            if self.attempt >= self._max_attempts:
                self._enter(SupervisorState.FAILED)
                raise ConnectionFailure(
                    f"Failed to connect to {self._config.host}:{self._config.port} "
                    f"after {self.attempt} attempts: {self.last_error}",
                    attempts=self.attempt,
                ) from self.last_error

            delay = backoff_delay(self.attempt)
            self._enter(SupervisorState.BACKOFF)
            logger.info("Retrying in %d seconds...", delay)
            await self._sleep(delay)


async def acquire(
    config: ConnectionConfig,
    max_attempts: int = 3,
    connector: Connector | None = None,
    sleep: Sleeper | None = None,
) -> CatalogSession:
    """Open a session for ``config`` with up to ``max_attempts`` attempts.

    Raises:
        ConnectionFailure: If every attempt failed.
    """
    supervisor = ConnectionSupervisor(config, max_attempts, connector=connector, sleep=sleep)
    return await supervisor.acquire()
