"""DNS and ingress configuration for tunnel routes."""

from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from ..cloudflare.client import CloudflareApiClient
from ..cloudflare.models import IngressConfiguration, IngressRule, ZoneInfo, tunnel_target
from ..common.exceptions import (
    CloudflareApiError,
    ProvisioningError,
    RouteProvisioningError,
    ZoneNotFoundError,
)
from ..common.logging import get_logger
from .models import Route, RouteStatus, ServiceTarget

logger = get_logger(__name__)

ZONE_LOOKUP_FAILED = "zone_lookup_failed"
ZONE_NOT_FOUND = "zone_not_found"
TARGET_FAILED = "target_resolution_failed"
DNS_FAILED = "dns_failed"
INGRESS_FAILED = "ingress_failed"
TUNNEL_FAILED = "tunnel_failed"

EndpointResolver = Callable[[Route], Awaitable[ServiceTarget]]


def zone_domain_for(hostname: str) -> str:
    """Domain used to look up the zone owning ``hostname``.

    Takes the last two labels, so ``api.example.com`` -> ``example.com``.
    Wrong for multi-label public suffixes such as ``example.co.uk``.
    """
    parts = hostname.rstrip(".").split(".")
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return hostname


class RouteBatchResult(BaseModel):
    """Outcome of a successful route batch."""

    model_config = ConfigDict(frozen=True)

    routes: list[Route]
    configuration: IngressConfiguration


class RouteProvisioner:
    """Creates DNS records and pushes the ingress table for one tunnel.

    Routes are processed in order; the first failure aborts the batch and the
    ingress table is not pushed. The table is always rebuilt from the full set
    of routes and replaced in one call.
    """

    def __init__(
        self,
        proxied: bool = True,
        endpoint_resolver: EndpointResolver | None = None,
    ):
        """Initialize route provisioner.

        Args:
            proxied: Proxy DNS records through Cloudflare
            endpoint_resolver: Resolves a route's target at provisioning time
                (defaults to the declared target)
        """
        self.proxied = proxied
        self._endpoint_resolver = endpoint_resolver

    async def _resolve_target(self, route: Route) -> ServiceTarget:
        if self._endpoint_resolver is None:
            return route.target
        return await self._endpoint_resolver(route)

    async def configure_routes(
        self,
        client: CloudflareApiClient,
        tunnel_name: str,
        tunnel_id: str | None,
        routes: list[Route],
    ) -> RouteBatchResult:
        """Configure every route of a tunnel and push its ingress table.

        Args:
            client: Authenticated API client
            tunnel_name: Name of the owning tunnel
            tunnel_id: Remote id of the tunnel
            routes: All routes declared for the tunnel, in declaration order

        Returns:
            Updated routes and the pushed configuration

        Raises:
            ProvisioningError: If the tunnel has no id yet
            RouteProvisioningError: If any route fails; carries all routes marked failed
        """
        if not tunnel_id:
            raise ProvisioningError(f"Tunnel '{tunnel_name}' not yet provisioned")

        configured: list[Route] = []
        rules: list[IngressRule] = []
        failed_hostname: str | None = None
        reason = ZONE_LOOKUP_FAILED

        try:
            for route in routes:
                failed_hostname = route.hostname
                reason = ZONE_LOOKUP_FAILED
                zone = await self._find_zone(client, route)
                reason = TARGET_FAILED
                target = await self._resolve_target(route)
                reason = DNS_FAILED
                route = await self._create_dns_record(client, zone.id, tunnel_id, route, target)
                configured.append(route)
                rules.append(IngressRule(hostname=route.hostname, service=route.service))

            failed_hostname = None
            reason = INGRESS_FAILED
            config = IngressConfiguration.from_rules(rules)
            logger.info(
                "Updating tunnel configuration", tunnel=tunnel_name, routes=len(routes)
            )
            await client.replace_ingress_configuration(tunnel_id, config)
        except Exception as e:
            if isinstance(e, ZoneNotFoundError):
                reason = ZONE_NOT_FOUND
            logger.error(
                "Failed to configure routes",
                tunnel=tunnel_name,
                hostname=failed_hostname,
                reason=reason,
                error=str(e),
            )
            failed = []
            for r in self._merge(routes, configured):
                # Only the route that broke the batch (or all, if the push failed) gets a reason
                blamed = failed_hostname is None or r.hostname == failed_hostname
                failed.append(
                    r.with_status(RouteStatus.FAILED, failure_reason=reason if blamed else None)
                )
            raise RouteProvisioningError(
                f"Failed to configure routes for tunnel '{tunnel_name}': {e}",
                tunnel_name=tunnel_name,
                routes=failed,
            ) from e

        finished = [
            r.with_status(RouteStatus.FINISHED, ingress_rule_pushed=True) for r in configured
        ]
        return RouteBatchResult(routes=finished, configuration=config)

    @staticmethod
    def _merge(declared: list[Route], configured: list[Route]) -> list[Route]:
        """Declared routes with the progress made on the configured ones."""
        done = {r.hostname: r for r in configured}
        return [done.get(r.hostname, r) for r in declared]

    async def _find_zone(self, client: CloudflareApiClient, route: Route) -> ZoneInfo:
        domain = zone_domain_for(route.hostname)
        logger.info("Looking up zone", hostname=route.hostname, domain=domain)
        zone = await client.find_zone_by_domain(domain)
        if zone is None:
            raise ZoneNotFoundError(
                f"Could not find zone for domain '{domain}'. DNS record cannot be created for "
                f"'{route.hostname}'. Make sure the domain is in your Cloudflare account and "
                "the API token has Zone:Read permission.",
                domain=domain,
                hostname=route.hostname,
            )
        return zone

    async def _create_dns_record(
        self,
        client: CloudflareApiClient,
        zone_id: str,
        tunnel_id: str,
        route: Route,
        target: ServiceTarget,
    ) -> Route:
        service = target.service_url
        log = logger.bind(hostname=route.hostname)

        log.info("Creating DNS CNAME record", zone_id=zone_id, target=tunnel_target(tunnel_id))
        try:
            await client.create_or_update_dns_record(
                zone_id, route.hostname, tunnel_target(tunnel_id), proxied=self.proxied
            )
        except CloudflareApiError as e:
            if not e.already_exists:
                raise
            log.info("DNS record already exists, skipping creation")

        log.info("Added ingress rule", service=service)
        return route.with_status(
            RouteStatus.CONFIGURING, dns_record_created=True, service=service
        )
