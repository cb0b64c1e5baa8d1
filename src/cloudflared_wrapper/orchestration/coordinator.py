"""Orchestration of tunnel and route provisioning ahead of connector startup.

For every declared tunnel the coordinator runs, in order:

1. resolve API credentials (fails before any network call if incomplete)
2. find or create the tunnel and fetch its connector token
3. open the tunnel's startup gate with that token
4. configure DNS and push the ingress table for all of the tunnel's routes

Different tunnels are processed concurrently. Each transition is published
through the :class:`StateReporter`; failures are published and re-raised, and
a tunnel that fails before step 3 leaves its gate failed so the connector
never starts.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..cloudflare.client import ApiClientConfig, CloudflareApiClient
from ..common.exceptions import ConfigurationError, OrchestrationError, RouteProvisioningError
from ..common.logging import get_logger
from ..connector import ConnectorSpec
from ..tunnels.config import CloudflareCredentials, TunnelConfig
from ..tunnels.models import ProvisionedTunnel, Route, RouteStatus, Tunnel, TunnelStatus
from ..tunnels.provisioner import TunnelProvisioner
from ..tunnels.registry import TunnelRegistry
from ..tunnels.routes import TUNNEL_FAILED, EndpointResolver, RouteProvisioner
from .gate import StartupGate
from .interfaces import ConnectorLauncher, ParameterSource, StateReporter
from .reporting import LoggingStateReporter

logger = get_logger(__name__)

ClientFactory = Callable[[CloudflareCredentials], CloudflareApiClient]


def default_client_factory(
    credentials: CloudflareCredentials, config: ApiClientConfig | None = None
) -> CloudflareApiClient:
    return CloudflareApiClient(credentials.api_token, credentials.account_id, config=config)


@dataclass
class OrchestrationResult:
    """Final state of every tunnel and route after a run."""

    tunnels: dict[str, Tunnel] = field(default_factory=dict)
    routes: dict[str, Route] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise if any tunnel or route batch failed.

        Raises:
            OrchestrationError: Carrying the failure per tunnel name
        """
        if self.failures:
            summary = "; ".join(f"{name}: {error}" for name, error in self.failures.items())
            raise OrchestrationError(f"Provisioning failed: {summary}", failures=self.failures)


class ProvisioningCoordinator:
    """Sequences tunnel and route provisioning and gates connector startup."""

    def __init__(
        self,
        registry: TunnelRegistry,
        parameters: ParameterSource,
        *,
        reporter: StateReporter | None = None,
        client_factory: ClientFactory | None = None,
        tunnel_provisioner: TunnelProvisioner | None = None,
        endpoint_resolver: EndpointResolver | None = None,
    ):
        """Initialize coordinator.

        Args:
            registry: Declared tunnels and routes
            parameters: Source of API credentials and external tunnel tokens
            reporter: Receives state transitions (logs them by default)
            client_factory: Builds an API client from credentials
            tunnel_provisioner: Find-or-create step
            endpoint_resolver: Resolves route targets when routes are configured
        """
        self.registry = registry
        self.parameters = parameters
        self.reporter: StateReporter = reporter or LoggingStateReporter()
        self._client_factory = client_factory or default_client_factory
        self.tunnel_provisioner = tunnel_provisioner or TunnelProvisioner()
        self._endpoint_resolver = endpoint_resolver
        self._gates: dict[str, StartupGate] = {}
        self._provisioned: dict[str, ProvisionedTunnel] = {}

    def gate(self, tunnel_name: str) -> StartupGate:
        """Startup gate of a declared tunnel."""
        self.registry.get_config(tunnel_name)
        if tunnel_name not in self._gates:
            self._gates[tunnel_name] = StartupGate(tunnel_name)
        return self._gates[tunnel_name]

    def provisioned(self, tunnel_name: str) -> ProvisionedTunnel | None:
        """Id and token produced for an auto-provisioned tunnel, if any."""
        return self._provisioned.get(tunnel_name)

    async def on_before_start(self) -> OrchestrationResult:
        """Host hook: provision everything and raise if anything failed."""
        result = await self.run()
        result.raise_for_failures()
        return result

    async def run(self) -> OrchestrationResult:
        """Provision all declared tunnels and their routes.

        Returns:
            Final state per tunnel and route, plus failures keyed by tunnel name
        """
        names = [tunnel.name for tunnel in self.registry.list_tunnels()]
        for name in names:
            # A re-run gets fresh gates; waiters on unsettled gates keep theirs
            if self.gate(name).is_settled:
                self._gates[name] = StartupGate(name)

        logger.info("Starting provisioning run", tunnels=names)
        outcomes = await asyncio.gather(
            *(self._run_tunnel(name) for name in names), return_exceptions=True
        )

        result = OrchestrationResult()
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, Exception):
                result.failures[name] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome

        result.tunnels = {t.name: t for t in self.registry.list_tunnels()}
        result.routes = {r.hostname: r for r in self.registry.list_routes()}
        logger.info(
            "Provisioning run complete",
            succeeded=result.succeeded,
            failed=sorted(result.failures),
        )
        return result

    async def start_connector(self, tunnel_name: str, launcher: ConnectorLauncher) -> Any:
        """Start the tunnel's connector once provisioning has succeeded.

        Raises:
            StartupBlockedError: If provisioning failed; the launcher is not called
        """
        config = self.registry.get_config(tunnel_name)
        token = await self.gate(tunnel_name).wait()
        spec = ConnectorSpec(tunnel_name=tunnel_name, token=token, metrics_port=config.metrics_port)
        logger.info("Starting connector", tunnel=tunnel_name, health_url=spec.health_url())
        return await launcher.start(spec)

    # Tunnel pipeline

    async def _run_tunnel(self, name: str) -> None:
        config = self.registry.get_config(name)
        gate = self.gate(name)

        try:
            await self._set_tunnel(name, TunnelStatus.STARTING)
            # Every run starts the routes from scratch
            routes = [
                route.with_status(
                    RouteStatus.STARTING,
                    dns_record_created=False,
                    ingress_rule_pushed=False,
                    service=None,
                    failure_reason=None,
                )
                for route in self.registry.routes_for(name)
            ]
            for route in routes:
                await self._set_route(route)

            if config.is_auto_provisioned:
                await self._run_auto(config, gate, routes)
            else:
                await self._run_external(config, gate, routes)
        except BaseException as e:
            if not gate.is_settled:
                gate.fail(e)
            await self._fail_unsettled(name, e)
            raise

    async def _fail_unsettled(self, name: str, error: BaseException) -> None:
        """Move the tunnel and its routes out of any non-terminal state."""
        tunnel = self.registry.get_tunnel(name)
        tunnel_failed = tunnel is None or tunnel.status != TunnelStatus.RUNNING
        if tunnel is None or not tunnel.status.is_terminal:
            await self._set_tunnel(name, TunnelStatus.FAILED, error=str(error) or type(error).__name__)

        reason = TUNNEL_FAILED if tunnel_failed else None
        for route in self.registry.routes_for(name):
            if not route.status.is_terminal:
                await self._set_route(route.with_status(RouteStatus.FAILED, failure_reason=reason))

    async def _run_auto(self, config: TunnelConfig, gate: StartupGate, routes: list[Route]) -> None:
        name = config.name
        await self._set_tunnel(name, TunnelStatus.PROVISIONING)

        credentials = await self._resolve_credentials(config)
        client = self._client_factory(credentials)

        async with client:
            provisioned = await self.tunnel_provisioner.provision(client, name)

            self._provisioned[name] = provisioned
            await self._set_tunnel(
                name,
                TunnelStatus.RUNNING,
                tunnel_id=provisioned.tunnel_id,
                created=provisioned.created,
            )
            gate.release(provisioned.token)

            await self._configure_routes(client, config, provisioned, routes)

    async def _run_external(
        self, config: TunnelConfig, gate: StartupGate, routes: list[Route]
    ) -> None:
        name = config.name
        token = await self.parameters.get_value(config.tunnel_token_parameter or "")
        if not token:
            raise ConfigurationError(
                f"Tunnel token parameter '{config.tunnel_token_parameter}' is required for tunnel '{name}'"
            )

        await self._set_tunnel(name, TunnelStatus.RUNNING, mode=config.mode.value)
        gate.release(token)

        for route in routes:
            await self._set_route(route.with_status(RouteStatus.SKIPPED))

    async def _resolve_credentials(self, config: TunnelConfig) -> CloudflareCredentials:
        api_token = await self.parameters.get_value(config.api_token_parameter or "")
        account_id = await self.parameters.get_value(config.account_id_parameter or "")
        return CloudflareCredentials.from_values(api_token, account_id, config.name)

    async def _configure_routes(
        self,
        client: CloudflareApiClient,
        config: TunnelConfig,
        provisioned: ProvisionedTunnel,
        routes: list[Route],
    ) -> None:
        routes = [route.with_status(RouteStatus.CONFIGURING) for route in routes]
        for route in routes:
            await self._set_route(route)

        provisioner = RouteProvisioner(
            proxied=config.proxied, endpoint_resolver=self._endpoint_resolver
        )
        try:
            batch = await provisioner.configure_routes(
                client, config.name, provisioned.tunnel_id, routes
            )
        except RouteProvisioningError as e:
            for route in e.routes:
                await self._set_route(route)
            raise
        except Exception:
            for route in routes:
                await self._set_route(route.with_status(RouteStatus.FAILED))
            raise

        for route in batch.routes:
            await self._set_route(route)

    # State publication

    async def _set_tunnel(self, name: str, status: TunnelStatus, **properties: Any) -> None:
        current = self.registry.get_tunnel(name) or Tunnel(name=name)
        changes = {k: v for k, v in properties.items() if k in ("tunnel_id", "created")}
        self.registry.update_tunnel(current.with_status(status, **changes))
        await self.reporter.publish(name, status.value, **properties)

    async def _set_route(self, route: Route) -> None:
        self.registry.update_route(route)
        properties: dict[str, Any] = {"hostname": route.hostname, "tunnel": route.tunnel}
        if route.service:
            properties["service"] = route.service
        if route.failure_reason:
            properties["failure_reason"] = route.failure_reason
        await self.reporter.publish(route.name, route.status.value, **properties)
