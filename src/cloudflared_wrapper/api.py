"""High-level API for the cloudflared wrapper.

This module provides simple functions for the common case: one tunnel,
a handful of hostnames, credentials at hand.
"""

from collections.abc import Mapping
from urllib.parse import urlsplit

from .common.logging import get_logger
from .connector import ProcessConnectorLauncher
from .orchestration import ProvisioningCoordinator, StateReporter, StaticParameterSource
from .tunnels import ProvisionedTunnel, ServiceTarget, TunnelConfig, TunnelRegistry

logger = get_logger(__name__)


def parse_target(target: str | ServiceTarget) -> ServiceTarget:
    """Parse ``host:port`` or ``scheme://host:port`` into a service target.

    Example:
        >>> parse_target("10.0.0.1:8080").service_url
        'http://10.0.0.1:8080'
    """
    if isinstance(target, ServiceTarget):
        return target

    parts = urlsplit(target if "://" in target else f"//{target}")
    if not parts.hostname:
        raise ValueError(f"Invalid service target '{target}'")
    if parts.scheme:
        return ServiceTarget(host=parts.hostname, port=parts.port, scheme=parts.scheme)
    return ServiceTarget(host=parts.hostname, port=parts.port)


def build_coordinator(
    name: str,
    routes: Mapping[str, str | ServiceTarget],
    *,
    api_token: str,
    account_id: str,
    proxied: bool = True,
    metrics_port: int | None = None,
    reporter: StateReporter | None = None,
) -> ProvisioningCoordinator:
    """Declare one auto-provisioned tunnel with its routes.

    Args:
        name: Tunnel name
        routes: Public hostname -> internal target (e.g. ``"10.0.0.1:8080"``)
        api_token: Cloudflare API token
        account_id: Cloudflare account ID
        proxied: Proxy DNS records through Cloudflare
        metrics_port: Host port for the connector metrics endpoint
        reporter: Receives state transitions
    """
    config = TunnelConfig(name=name, proxied=proxied, metrics_port=metrics_port)
    registry = TunnelRegistry()
    registry.add_tunnel(config)
    for hostname, target in routes.items():
        registry.add_route(name, hostname, parse_target(target))

    parameters = StaticParameterSource(
        {
            config.api_token_parameter or "": api_token,
            config.account_id_parameter or "": account_id,
        }
    )
    return ProvisioningCoordinator(registry, parameters, reporter=reporter)


async def provision_tunnel(
    name: str,
    routes: Mapping[str, str | ServiceTarget],
    *,
    api_token: str,
    account_id: str,
    proxied: bool = True,
) -> ProvisionedTunnel:
    """Find or create a tunnel, route hostnames to it and return its token.

    Raises:
        OrchestrationError: If the tunnel or any route could not be provisioned

    Example:
        >>> tunnel = await provision_tunnel(
        ...     "my-tunnel", {"app.example.com": "localhost:3000"},
        ...     api_token=token, account_id=account,
        ... )
    """
    coordinator = build_coordinator(
        name, routes, api_token=api_token, account_id=account_id, proxied=proxied
    )
    await coordinator.on_before_start()

    provisioned = coordinator.provisioned(name)
    if provisioned is None:
        raise RuntimeError(f"Tunnel '{name}' was not provisioned")
    return provisioned


async def run_tunnel(
    name: str,
    routes: Mapping[str, str | ServiceTarget],
    *,
    api_token: str,
    account_id: str,
    metrics_port: int | None = None,
    launcher: ProcessConnectorLauncher | None = None,
) -> ProcessConnectorLauncher:
    """Provision a tunnel and start a local cloudflared connector for it.

    Returns:
        The launcher owning the connector process (use ``stop_all`` to stop it)

    Raises:
        StartupBlockedError: If the tunnel itself could not be provisioned
    """
    launcher = launcher or ProcessConnectorLauncher()
    coordinator = build_coordinator(
        name, routes, api_token=api_token, account_id=account_id, metrics_port=metrics_port
    )
    result = await coordinator.run()
    # Only a failed tunnel blocks the connector; route failures leave the old ingress table
    await coordinator.start_connector(name, launcher)
    if not result.succeeded:
        logger.warning("Tunnel routes not updated", tunnel=name, error=str(result.failures[name]))
    logger.info("Tunnel running", tunnel=name, hostnames=list(routes))
    return launcher
