"""Provisioning orchestration and connector startup gating."""

from .coordinator import (
    ClientFactory,
    OrchestrationResult,
    ProvisioningCoordinator,
    default_client_factory,
)
from .gate import StartupGate
from .interfaces import ConnectorLauncher, ParameterSource, StateReporter
from .parameters import EnvironmentParameterSource, StaticParameterSource
from .reporting import InMemoryStateReporter, LoggingStateReporter, StateUpdate

__all__ = [
    "ProvisioningCoordinator",
    "OrchestrationResult",
    "ClientFactory",
    "default_client_factory",
    "StartupGate",
    # Collaborator protocols
    "ParameterSource",
    "StateReporter",
    "ConnectorLauncher",
    # Implementations
    "StaticParameterSource",
    "EnvironmentParameterSource",
    "LoggingStateReporter",
    "InMemoryStateReporter",
    "StateUpdate",
]
