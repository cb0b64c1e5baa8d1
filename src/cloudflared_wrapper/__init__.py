"""Cloudflared wrapper - provision Cloudflare tunnels, DNS and ingress before the connector starts."""

# High-level API
from . import (
    cloudflare,  # For test access to API components
    orchestration,
    tunnels,
)
from .api import build_coordinator, parse_target, provision_tunnel, run_tunnel

# Cloudflare API
from .cloudflare import (
    ApiClientConfig,
    CloudflareApiClient,
    IngressConfiguration,
    IngressRule,
)

# Common utilities
from .common.exceptions import (
    BinaryNotFoundError,
    CloudflareApiError,
    CloudflaredWrapperError,
    ConfigurationError,
    OrchestrationError,
    ProvisioningError,
    RouteProvisioningError,
    StartupBlockedError,
    TransportError,
    TunnelProvisioningError,
    ZoneNotFoundError,
)
from .common.logging import get_logger, setup_logging
from .common.utils import mask_sensitive_data, sanitize_log_data

# Connector
from .connector import ConnectorSpec, ProcessConnectorLauncher

# Orchestration
from .orchestration import (
    EnvironmentParameterSource,
    InMemoryStateReporter,
    LoggingStateReporter,
    OrchestrationResult,
    ProvisioningCoordinator,
    StartupGate,
    StaticParameterSource,
)

# Tunnels
from .tunnels import (
    ProvisionedTunnel,
    ProvisioningMode,
    Route,
    RouteProvisioner,
    RouteStatus,
    ServiceTarget,
    Tunnel,
    TunnelConfig,
    TunnelProvisioner,
    TunnelRegistry,
    TunnelStatus,
)

__version__ = "0.1.0"


__all__ = [
    # High-level API
    "provision_tunnel",
    "run_tunnel",
    "build_coordinator",
    "parse_target",
    # Cloudflare API
    "CloudflareApiClient",
    "ApiClientConfig",
    "IngressConfiguration",
    "IngressRule",
    # Tunnels
    "TunnelConfig",
    "ProvisioningMode",
    "TunnelRegistry",
    "Tunnel",
    "TunnelStatus",
    "Route",
    "RouteStatus",
    "ServiceTarget",
    "ProvisionedTunnel",
    "TunnelProvisioner",
    "RouteProvisioner",
    # Orchestration
    "ProvisioningCoordinator",
    "OrchestrationResult",
    "StartupGate",
    "StaticParameterSource",
    "EnvironmentParameterSource",
    "LoggingStateReporter",
    "InMemoryStateReporter",
    # Connector
    "ConnectorSpec",
    "ProcessConnectorLauncher",
    # Exceptions
    "CloudflaredWrapperError",
    "ConfigurationError",
    "BinaryNotFoundError",
    "TransportError",
    "CloudflareApiError",
    "ProvisioningError",
    "TunnelProvisioningError",
    "RouteProvisioningError",
    "ZoneNotFoundError",
    "StartupBlockedError",
    "OrchestrationError",
    # Utilities
    "get_logger",
    "setup_logging",
    "mask_sensitive_data",
    "sanitize_log_data",
    "cloudflare",
    "orchestration",
    "tunnels",
]
