"""Registry of declared tunnels and routes."""

from typing import Any

from pydantic import BaseModel, Field

from ..common.exceptions import CloudflaredWrapperError
from ..common.logging import get_logger
from .config import TunnelConfig
from .models import Route, RouteStatus, ServiceTarget, Tunnel, TunnelStatus

logger = get_logger(__name__)


class TunnelRegistryError(CloudflaredWrapperError):
    """Exception raised for tunnel registry operations."""

    pass


class TunnelRegistry(BaseModel):
    """In-memory store of declared tunnels, their routes and current state.

    Routes reference their tunnel by name and keep declaration order.
    """

    configs: dict[str, TunnelConfig] = Field(default_factory=dict)
    tunnels: dict[str, Tunnel] = Field(default_factory=dict, description="Tunnel state by name")
    routes: dict[str, Route] = Field(default_factory=dict, description="Route state by hostname")
    max_tunnels: int = Field(default=10, ge=1, le=100, description="Maximum number of tunnels")

    def add_tunnel(self, config: TunnelConfig) -> Tunnel:
        """Declare a tunnel.

        Raises:
            TunnelRegistryError: If the name is taken or the limit is reached
        """
        if config.name in self.configs:
            raise TunnelRegistryError(f"Tunnel '{config.name}' already declared")

        if len(self.configs) >= self.max_tunnels:
            raise TunnelRegistryError(f"Maximum tunnel limit ({self.max_tunnels}) reached")

        self.configs[config.name] = config
        tunnel = Tunnel(name=config.name)
        self.tunnels[config.name] = tunnel
        logger.debug("Declared tunnel", tunnel=config.name, mode=config.mode.value)
        return tunnel

    def add_route(
        self, tunnel_name: str, hostname: str, target: ServiceTarget
    ) -> Route:
        """Declare a route on an existing tunnel.

        Raises:
            TunnelRegistryError: If the tunnel is unknown or the hostname is taken
        """
        if tunnel_name not in self.configs:
            raise TunnelRegistryError(f"Tunnel '{tunnel_name}' not found")

        route = Route(hostname=hostname, target=target, tunnel=tunnel_name)
        if route.hostname in self.routes:
            owner = self.routes[route.hostname].tunnel
            raise TunnelRegistryError(
                f"Hostname '{route.hostname}' already routed through tunnel '{owner}'"
            )

        self.routes[route.hostname] = route
        logger.debug("Declared route", tunnel=tunnel_name, hostname=route.hostname)
        return route

    def get_config(self, tunnel_name: str) -> TunnelConfig:
        if tunnel_name not in self.configs:
            raise TunnelRegistryError(f"Tunnel '{tunnel_name}' not found")
        return self.configs[tunnel_name]

    def get_tunnel(self, tunnel_name: str) -> Tunnel | None:
        return self.tunnels.get(tunnel_name)

    def get_route(self, hostname: str) -> Route | None:
        return self.routes.get(hostname.lower().rstrip("."))

    def update_tunnel(self, tunnel: Tunnel) -> None:
        if tunnel.name not in self.tunnels:
            raise TunnelRegistryError(f"Tunnel '{tunnel.name}' not found")
        self.tunnels[tunnel.name] = tunnel

    def update_route(self, route: Route) -> None:
        if route.hostname not in self.routes:
            raise TunnelRegistryError(f"Route '{route.hostname}' not found")
        self.routes[route.hostname] = route

    def routes_for(self, tunnel_name: str) -> list[Route]:
        """Routes of a tunnel in declaration order."""
        return [route for route in self.routes.values() if route.tunnel == tunnel_name]

    def list_tunnels(self, status: TunnelStatus | None = None) -> list[Tunnel]:
        tunnels = list(self.tunnels.values())
        if status is not None:
            tunnels = [t for t in tunnels if t.status == status]
        return tunnels

    def list_routes(self, status: RouteStatus | None = None) -> list[Route]:
        routes = list(self.routes.values())
        if status is not None:
            routes = [r for r in routes if r.status == status]
        return routes

    def to_dict(self) -> dict[str, Any]:
        """Serialize current state to a dictionary.

        Returns:
            Dictionary representation of tunnels and routes
        """
        return {
            "tunnels": [tunnel.model_dump(mode="json") for tunnel in self.tunnels.values()],
            "routes": [route.model_dump(mode="json") for route in self.routes.values()],
            "max_tunnels": self.max_tunnels,
        }
