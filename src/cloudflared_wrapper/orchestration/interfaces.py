"""Protocol interfaces for the host application the coordinator plugs into."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..connector import ConnectorSpec


class ParameterSource(Protocol):
    """Resolves named secrets and parameters."""

    async def get_value(self, name: str) -> str | None:
        """Current value of parameter ``name``, or None if unset."""
        ...


class StateReporter(Protocol):
    """Publishes entity state transitions for observability."""

    async def publish(self, entity: str, state: str, **properties: Any) -> None:
        """Record that ``entity`` entered ``state``."""
        ...


class ConnectorLauncher(Protocol):
    """Starts the long-lived connector process for a tunnel."""

    async def start(self, spec: ConnectorSpec) -> Any:
        """Start a connector described by ``spec``."""
        ...
