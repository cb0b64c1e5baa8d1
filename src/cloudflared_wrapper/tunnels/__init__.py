"""Tunnel and route declaration and provisioning."""

from .config import (
    DEFAULT_METRICS_PORT,
    CloudflareCredentials,
    ProvisioningMode,
    TunnelConfig,
)
from .models import (
    ProvisionedTunnel,
    Route,
    RouteStatus,
    ServiceTarget,
    Tunnel,
    TunnelStatus,
)
from .provisioner import TunnelProvisioner
from .registry import TunnelRegistry, TunnelRegistryError
from .routes import RouteBatchResult, RouteProvisioner, zone_domain_for

__all__ = [
    # Config
    "TunnelConfig",
    "CloudflareCredentials",
    "ProvisioningMode",
    "DEFAULT_METRICS_PORT",
    # Models
    "Tunnel",
    "TunnelStatus",
    "Route",
    "RouteStatus",
    "ServiceTarget",
    "ProvisionedTunnel",
    # Registry
    "TunnelRegistry",
    "TunnelRegistryError",
    # Provisioning
    "TunnelProvisioner",
    "RouteProvisioner",
    "RouteBatchResult",
    "zone_domain_for",
]
