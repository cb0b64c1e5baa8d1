"""State reporters for tunnel and route transitions."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..common.logging import get_logger
from ..common.utils import sanitize_log_data

logger = get_logger(__name__)


class StateUpdate(BaseModel):
    """A single published state transition."""

    entity: str
    state: str
    properties: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)


class LoggingStateReporter:
    """Writes state transitions to the structured log."""

    async def publish(self, entity: str, state: str, **properties: Any) -> None:
        logger.info("State changed", entity=entity, state=state, **sanitize_log_data(properties))


class InMemoryStateReporter:
    """Keeps every transition, in order. Also logs them."""

    def __init__(self) -> None:
        self.updates: list[StateUpdate] = []
        self._log = LoggingStateReporter()

    async def publish(self, entity: str, state: str, **properties: Any) -> None:
        self.updates.append(StateUpdate(entity=entity, state=state, properties=properties))
        await self._log.publish(entity, state, **properties)

    def states_of(self, entity: str) -> list[str]:
        """States ``entity`` went through, oldest first."""
        return [u.state for u in self.updates if u.entity == entity]

    def latest(self, entity: str) -> str | None:
        states = self.states_of(entity)
        return states[-1] if states else None
