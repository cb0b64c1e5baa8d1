"""Startup gate between tunnel provisioning and the connector process."""

import asyncio

from ..common.exceptions import StartupBlockedError
from ..common.logging import get_logger

logger = get_logger(__name__)


class StartupGate:
    """Blocks connector startup until its tunnel's provisioning has succeeded.

    The gate settles exactly once: opened with the connector token, or failed
    with the provisioning error. Waiters on a failed gate get
    :class:`StartupBlockedError`, never a token.
    """

    def __init__(self, tunnel_name: str):
        self.tunnel_name = tunnel_name
        self._event = asyncio.Event()
        self._token: str | None = None
        self._error: BaseException | None = None

    @property
    def is_settled(self) -> bool:
        return self._event.is_set()

    @property
    def is_open(self) -> bool:
        return self._event.is_set() and self._token is not None

    @property
    def error(self) -> BaseException | None:
        return self._error

    def release(self, token: str) -> None:
        """Open the gate with the connector token.

        Raises:
            RuntimeError: If the gate has already settled
        """
        if self._event.is_set():
            raise RuntimeError(f"Startup gate for tunnel '{self.tunnel_name}' already settled")
        if not token:
            raise ValueError("Connector token cannot be empty")
        self._token = token
        self._event.set()
        logger.debug("Startup gate opened", tunnel=self.tunnel_name)

    def fail(self, error: BaseException) -> None:
        """Close the gate for good."""
        if self._event.is_set():
            raise RuntimeError(f"Startup gate for tunnel '{self.tunnel_name}' already settled")
        self._error = error
        self._event.set()
        logger.debug("Startup gate failed", tunnel=self.tunnel_name, error=str(error))

    async def wait(self) -> str:
        """Wait for provisioning to settle and return the connector token.

        Raises:
            StartupBlockedError: If provisioning failed
        """
        await self._event.wait()
        if self._token is None:
            raise StartupBlockedError(
                f"Connector for tunnel '{self.tunnel_name}' blocked: provisioning failed: {self._error}",
                tunnel_name=self.tunnel_name,
            ) from self._error
        return self._token
